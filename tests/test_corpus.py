import pytest
from pytest import fail
import bomref.corpus
from bomref.corpus import Corpus, Address, Book, defaultCorpus, initCorpus, CORPUS_ENV, CORPUS_URL
from bomref.errors import UnknownBook, BookOutOfRange, ChapterOutOfRange, VerseOutOfRange, \
                          CorpusNotFound, CorpusInvalid
import os, io, random

samplepath = os.path.join(os.path.dirname(__file__), "bom_sample.txt")
bom = Corpus.fromGutenberg(samplepath)

enos = """THE BOOK OF ENOS

Enos 1:1
     1 Behold, it came to pass.

Enos 1:2
     2 And I will tell you.
"""

def test_shape():
    if len(bom.books) != 15 or bom.totalVerses != 976:
        fail(f"Sample corpus has {len(bom.books)} books and {bom.totalVerses} verses")
    b = bom.book(8)
    if b.name != "Alma" or b.chapterCount != 20 or bom.verseCount(8, 5) != 62:
        fail(f"Alma read as {b}")

def test_titles():
    b = bom.book(0)
    if b.title != "THE FIRST BOOK OF NEPHI":
        fail(f"Title is {b.title}")
    if b.description != "An account of Lehi and his wife Sariah,\nand his four sons.":
        fail(f"Description is {b.description!r}")
    if bom.book(3).description is not None:
        fail("Enos has a description")

def test_single_chapter():
    for i, n in ((3, 27), (4, 15), (5, 30), (6, 18), (11, 49)):
        if bom.book(i).chapters != (n,):
            fail(f"{bom.book(i).name} has chapters {bom.book(i).chapters}")

def test_wrapped_text():
    res = bom.text(Address(0, 1, 1))
    if res != "Sample text for 1 Nephi 1:1, wrapped onto a second line.":
        fail(f"1 Nephi 1:1 reads '{res}'")

def test_successor():
    for a, b in (((8, 3, 5), (8, 3, 6)), ((8, 3, 27), (8, 4, 1)), ((0, 5, 22), (1, 1, 1)),
                 ((6, 1, 18), (7, 1, 1))):
        res = bom.successor(Address(*a))
        if res != Address(*b):
            fail(f"Successor of {a} is {res} rather than {b}")
        back = bom.predecessor(res)
        if back != Address(*a):
            fail(f"Predecessor of {b} is {back} rather than {a}")

def test_ends():
    if bom.successor(Address(14, 2, 2)) is not None:
        fail("There is a verse after Moroni 2:2")
    if bom.predecessor(Address(0, 1, 1)) is not None:
        fail("There is a verse before 1 Nephi 1:1")

def test_walk():
    count = 0
    a = Address(0, 1, 1)
    while a is not None:
        n = bom.successor(a)
        if n is not None and bom.predecessor(n) != a:
            fail(f"Predecessor of successor of {a} is {bom.predecessor(n)}")
        count += 1
        a = n
    if count != bom.totalVerses:
        fail(f"Walked {count} verses rather than {bom.totalVerses}")

def test_index():
    for i, v in enumerate(bom.verses()):
        if bom.index(v.address) != i or bom.addressAt(i) != v.address:
            fail(f"Verse {v.address} is at {bom.index(v.address)}, index {i} is {bom.addressAt(i)}")

def test_distance():
    if bom.distance(Address(0, 3, 1), Address(0, 5, 22)) != 90:
        fail("Distance over 1 Nephi 3-5 is wrong")

def test_lookup_errors():
    with pytest.raises(BookOutOfRange):
        bom.book(15)
    with pytest.raises(BookOutOfRange):
        bom.chapterCount(-1)
    with pytest.raises(ChapterOutOfRange):
        bom.verseCount(8, 21)
    with pytest.raises(ChapterOutOfRange):
        bom.verseCount(8, 0)
    for a in ((8, 3, 28), (8, 3, 0), (8, 0, 1), (8, 21, 1), (15, 1, 1), (20, 1, 1), (-1, 1, 1)):
        with pytest.raises(VerseOutOfRange):
            bom.text(Address(*a))
        with pytest.raises(VerseOutOfRange):
            bom.verse(Address(*a))
    with pytest.raises(VerseOutOfRange):
        bom.addressAt(bom.totalVerses)
    with pytest.raises(LookupError):
        bom.successor(Address(8, 3, 28))

def test_isvalid():
    if not bom.isvalid(Address(8, 3, 27)) or bom.isvalid(Address(8, 3, 28)):
        fail("Alma 3 has 27 verses")

def test_resolve():
    for s, res in (("alma", 8), ("ALMA", 8), ("1 ne.", 0), ("1-ne", 0), ("1Nephi", 0),
                   ("Mor", 12), ("Moro", 14), ("Moroni", 14), ("Words of Mormon", 6),
                   ("W of M", 6), ("wofm", 6), ("Hel.", 9), ("Mo", 7), ("Jar", 4)):
        r = bom.resolveBookName(s)
        if r != res:
            fail(f"'{s}' resolved to {bom.book(r).name} rather than {bom.book(res).name}")

def test_resolve_unknown():
    for s in ("", "M", "Nephi", "Genesis", "Almas"):
        with pytest.raises(UnknownBook):
            bom.resolveBookName(s)

def test_random():
    rng = random.Random(42)
    counts = [0] * len(bom.books)
    n = 20000
    for i in range(n):
        a = bom.randomAddress(rng)
        if not bom.isvalid(a):
            fail(f"Random address {a} is not in the corpus")
        counts[a.book] += 1
    expected = 644 / 976
    if abs(counts[8] / n - expected) > 0.03:
        fail(f"Alma drawn {counts[8]} times out of {n}")
    if any(c == 0 for c in counts):
        fail(f"Some books never drawn: {counts}")

def test_gutenberg_text():
    c = Corpus.fromGutenberg(enos)
    if len(c.books) != 1 or c.book(0).name != "Enos" or c.text(Address(0, 1, 2)) != "And I will tell you.":
        fail(f"Read {c}")

def test_gutenberg_file():
    c = Corpus.fromGutenberg(io.StringIO(enos))
    if c.totalVerses != 2:
        fail(f"Read {c}")

def test_gutenberg_missing():
    with pytest.raises(CorpusNotFound):
        Corpus.fromGutenberg(os.path.join(os.path.dirname(__file__), "nosuchfile.txt"))
    with pytest.raises(FileNotFoundError):
        Corpus.fromGutenberg("nosuchfile.txt")

def test_gutenberg_invalid():
    bad = (
        "\n\n\n",
        enos.replace("Enos 1:2\n     2", "Enos 1:3\n     3"),
        enos + "\nSome stray words.\n",
        "Enos 1:1\n     1 Behold.\n",
        enos.replace("ENOS", "FOO").replace("Enos", "Foo"),
        enos + "\n" + enos,
    )
    for s in bad:
        with pytest.raises(CorpusInvalid):
            Corpus.fromGutenberg(s)

def test_corpus_invalid():
    with pytest.raises(CorpusInvalid):
        Corpus([], [])
    with pytest.raises(ValueError):
        Corpus([Book(0, "Enos", "Enos", "enos", (2,))], [[["only one"]]])

def test_verses():
    vs = list(bom.verses())
    if len(vs) != bom.totalVerses or vs[-1].address != Address(14, 2, 2):
        fail(f"Corpus iterates {len(vs)} verses ending at {vs[-1].address}")

def test_default(monkeypatch):
    monkeypatch.setattr(bomref.corpus, "_corpus", None)
    monkeypatch.setenv(CORPUS_ENV, samplepath)
    c = defaultCorpus()
    if c.totalVerses != 976 or defaultCorpus() is not c:
        fail(f"Default corpus is {c}")

def test_init(monkeypatch):
    monkeypatch.setattr(bomref.corpus, "_corpus", None)
    c = initCorpus(enos)
    if defaultCorpus() is not c:
        fail("initCorpus did not install the corpus")
    initCorpus(bom)
    if defaultCorpus() is not bom or c.totalVerses != 2:
        fail("initCorpus did not replace the corpus")

def test_default_missing(monkeypatch):
    monkeypatch.setattr(bomref.corpus, "_corpus", None)
    monkeypatch.setenv(CORPUS_ENV, os.path.join(os.path.dirname(__file__), "nosuchcorpus.txt"))
    with pytest.raises(CorpusNotFound) as e:
        defaultCorpus()
    if CORPUS_URL not in str(e.value) or bomref.corpus._corpus is not None:
        fail(f"Missing corpus reported as '{e.value}'")
