import os, re, random, threading
from bisect import bisect_right
from dataclasses import dataclass
from functools import reduce
from typing import Optional, List, Tuple
from bomref.errors import UnknownBook, BookOutOfRange, ChapterOutOfRange, VerseOutOfRange, \
                          CorpusNotFound, CorpusInvalid
from bomref.utils import readsrc
import logging

logger = logging.getLogger(__name__)

_booktable = """1 Nephi|1 Ne.|1-ne
    2 Nephi|2 Ne.|2-ne
    Jacob|Jacob|jacob
    Enos|Enos|enos
    Jarom|Jarom|jarom
    Omni|Omni|omni
    Words of Mormon|W of M|w-of-m
    Mosiah|Mosiah|mosiah
    Alma|Alma|alma
    Helaman|Hel.|hel
    3 Nephi|3 Ne.|3-ne
    4 Nephi|4 Ne.|4-ne
    Mormon|Morm.|morm
    Ether|Ether|ether
    Moroni|Moro.|moro"""

booktable = [tuple(x.strip().split("|")) for x in _booktable.splitlines()]

CORPUS_ENV = "BOMREF_CORPUS"
CORPUS_URL = "https://www.gutenberg.org/ebooks/17"

def normname(s: str) -> str:
    ''' Key used to compare book names: case folded, no spaces, stops or hyphens '''
    return re.sub(r"[\s.\-]+", "", s).casefold()

_booknames = {normname(b[0]): b for b in booktable}


@dataclass(frozen=True, order=True)
class Address:
    book: int           # 0-based
    chapter: int        # 1-based
    verse: int          # 1-based


@dataclass(frozen=True)
class Verse:
    address: Address
    book: str
    text: str

    @property
    def reference(self) -> str:
        return f"{self.book} {self.address.chapter}:{self.address.verse}"

    def __str__(self):
        return f"{self.reference}\n{self.text}"


@dataclass(frozen=True)
class Book:
    ordinal: int
    name: str
    abbreviation: str
    slug: str
    chapters: Tuple[int, ...]       # verse count per chapter
    title: Optional[str] = None
    description: Optional[str] = None

    @property
    def aliases(self) -> List[str]:
        res = []
        for a in (self.name, self.abbreviation, self.slug):
            if a not in res:
                res.append(a)
        return res

    @property
    def chapterCount(self) -> int:
        return len(self.chapters)


class Corpus:
    ''' Immutable store of books, chapters and verse texts. Addresses are
        (book ordinal, chapter, verse) with 1-based chapters and verses. '''

    def __init__(self, books, texts):
        self.books = tuple(books)
        self._texts = tuple(tuple(tuple(c) for c in b) for b in texts)
        if not len(self.books):
            raise CorpusInvalid("No books found")
        if len(self._texts) != len(self.books):
            raise CorpusInvalid(f"{len(self.books)} books but text for {len(self._texts)}")
        for i, (b, t) in enumerate(zip(self.books, self._texts)):
            if b.ordinal != i:
                raise CorpusInvalid(f"{b.name} has ordinal {b.ordinal} at position {i}")
            if not len(b.chapters) or any(n < 1 for n in b.chapters):
                raise CorpusInvalid(f"{b.name} has an empty chapter or no chapters")
            if tuple(len(c) for c in t) != tuple(b.chapters):
                raise CorpusInvalid(f"Verse texts of {b.name} do not match its chapters")
        # cumulative verse counts to the start of each chapter, keyed by book
        self._chapstarts = tuple(tuple(reduce(lambda a, x: (a[0] + [a[1]+x], a[1]+x), b.chapters[:-1], ([0], 0))[0])
                                 for b in self.books)
        bookstarts = reduce(lambda a, x: (a[0] + [a[1]+sum(x.chapters)], a[1]+sum(x.chapters)),
                            self.books, ([0], 0))
        self._bookstarts = tuple(bookstarts[0][:-1])
        self.totalVerses = bookstarts[1]
        self._keys = {}
        self._aliases = []
        for b in self.books:
            keys = [normname(a) for a in b.aliases]
            self._aliases.append(keys)
            for k in keys:
                self._keys.setdefault(k, b.ordinal)
        logger.debug(f"Corpus of {len(self.books)} books and {self.totalVerses} verses")

    def __repr__(self):
        return f"Corpus({len(self.books)} books, {self.totalVerses} verses)"

    def book(self, bk: int) -> Book:
        if not isinstance(bk, int) or bk < 0 or bk >= len(self.books):
            raise BookOutOfRange(f"No book {bk}")
        return self.books[bk]

    def resolveBookName(self, text: str) -> int:
        ''' Returns the ordinal of the named book. Exact matches against a
            name, abbreviation or slug win, then the lowest numbered book that
            has a key starting with text (at least 2 characters) '''
        key = normname(text or "")
        if key in self._keys:
            return self._keys[key]
        if len(key) >= 2:
            for i, keys in enumerate(self._aliases):
                if any(k.startswith(key) for k in keys):
                    return i
        raise UnknownBook(f"Unknown book: '{text}'")

    def chapterCount(self, bk: int) -> int:
        return len(self.book(bk).chapters)

    def verseCount(self, bk: int, chapter: int) -> int:
        b = self.book(bk)
        if not isinstance(chapter, int) or chapter < 1 or chapter > len(b.chapters):
            raise ChapterOutOfRange(f"{b.name} has no chapter {chapter}")
        return b.chapters[chapter-1]

    def isvalid(self, addr: Address) -> bool:
        """ Returns whether the address is a verse in this corpus """
        try:
            n = self.verseCount(addr.book, addr.chapter)
        except (BookOutOfRange, ChapterOutOfRange):
            return False
        return isinstance(addr.verse, int) and 1 <= addr.verse <= n

    def _check(self, addr: Address):
        if not isinstance(addr, Address) or not self.isvalid(addr):
            raise VerseOutOfRange(f"No verse at {addr!r}")

    def text(self, addr: Address) -> str:
        self._check(addr)
        return self._texts[addr.book][addr.chapter-1][addr.verse-1]

    def verse(self, addr: Address) -> Verse:
        text = self.text(addr)
        return Verse(addr, self.books[addr.book].abbreviation, text)

    def index(self, addr: Address) -> int:
        ''' Position of the verse in the whole corpus, counting from 0 '''
        self._check(addr)
        return self._bookstarts[addr.book] + self._chapstarts[addr.book][addr.chapter-1] + addr.verse - 1

    def addressAt(self, index: int) -> Address:
        if not isinstance(index, int) or index < 0 or index >= self.totalVerses:
            raise VerseOutOfRange(f"No verse at index {index}")
        bk = bisect_right(self._bookstarts, index) - 1
        rem = index - self._bookstarts[bk]
        chap = bisect_right(self._chapstarts[bk], rem) - 1
        return Address(bk, chap + 1, rem - self._chapstarts[bk][chap] + 1)

    def distance(self, first: Address, last: Address) -> int:
        return self.index(last) - self.index(first)

    def successor(self, addr: Address) -> Optional[Address]:
        ''' The following verse, crossing chapters and books. None after the
            last verse of the corpus '''
        self._check(addr)
        book = self.books[addr.book]
        if addr.verse < book.chapters[addr.chapter-1]:
            return Address(addr.book, addr.chapter, addr.verse + 1)
        elif addr.chapter < len(book.chapters):
            return Address(addr.book, addr.chapter + 1, 1)
        elif addr.book + 1 < len(self.books):
            return Address(addr.book + 1, 1, 1)
        return None

    def predecessor(self, addr: Address) -> Optional[Address]:
        ''' The preceding verse. None before the first verse of the corpus '''
        self._check(addr)
        if addr.verse > 1:
            return Address(addr.book, addr.chapter, addr.verse - 1)
        elif addr.chapter > 1:
            return Address(addr.book, addr.chapter - 1, self.books[addr.book].chapters[addr.chapter-2])
        elif addr.book > 0:
            prev = self.books[addr.book - 1]
            return Address(addr.book - 1, len(prev.chapters), prev.chapters[-1])
        return None

    def firstverse(self, bk: int, chapter: int = 1) -> Address:
        self.verseCount(bk, chapter)
        return Address(bk, chapter, 1)

    def lastverse(self, bk: int, chapter: Optional[int] = None) -> Address:
        if chapter is None:
            chapter = self.chapterCount(bk)
        return Address(bk, chapter, self.verseCount(bk, chapter))

    def randomAddress(self, rng=None) -> Address:
        ''' Every verse is equally likely '''
        if rng is None:
            rng = random
        return self.addressAt(rng.randrange(self.totalVerses))

    def verses(self):
        for b, book in enumerate(self.books):
            for c, chap in enumerate(self._texts[b], 1):
                for v, text in enumerate(chap, 1):
                    yield Verse(Address(b, c, v), book.abbreviation, text)

    @classmethod
    def fromGutenberg(cls, src):
        """ Loads a corpus from the Project Gutenberg plain text edition, given
            as a path, file object or the text itself. The text must start
            with the title of the first book """
        try:
            data = readsrc(src)
        except FileNotFoundError as e:
            raise CorpusNotFound(f"Corpus not found: {src}") from e
        return GutenbergReader().read(data)


_chapterre = re.compile(r"^(?P<book>[^\n]+?)\s+(?P<chap>\d+)[ \t]*\nChapter\s+(?P<num>\d+)$")
_versere = re.compile(r"^(?P<book>[^\n]+?)\s+(?P<chap>\d+):(?P<verse>\d+)[ \t]*\n\s+(?P<num>\d+)\s+(?P<text>\S.*)$", flags=re.S)

class GutenbergReader:
    ''' Reads the blank line separated chunks of the Gutenberg text: book
        titles, book descriptions, chapter headings and verses '''

    def __init__(self):
        self.books = []
        self.prev = None

    def _error(self, msg, chunk):
        raise CorpusInvalid(f"{msg}: {chunk[:60]!r}")

    def read(self, data: str) -> Corpus:
        data = data.replace("\r\n", "\n")
        for chunk in re.split(r"\n[ \t]*\n", data):
            chunk = chunk.strip("\n")
            if not chunk.strip():
                continue
            if "\n" not in chunk and chunk.upper() == chunk and re.search(r"[A-Z]", chunk):
                self.title(chunk)
            elif m := _chapterre.match(chunk):
                self.chapter(m, chunk)
            elif m := _versere.match(chunk):
                self.verse(m, chunk)
            else:
                self.description(chunk)
        return self.corpus()

    def title(self, chunk):
        if self.prev not in (None, "verse"):
            self._error("Book title in incorrect location", chunk)
        self.books.append({'title': chunk.strip(), 'description': None, 'name': None, 'chapters': []})
        self.prev = "title"

    def description(self, chunk):
        if self.prev not in ("title", "description"):
            self._error("Book description in incorrect location", chunk)
        b = self.books[-1]
        b['description'] = chunk if b['description'] is None else b['description'] + "\n\n" + chunk
        self.prev = "description"

    def _setname(self, name, chunk):
        b = self.books[-1]
        name = " ".join(name.split())
        if b['name'] is None:
            b['name'] = name
        elif b['name'] != name:
            self._error(f"Expected {b['name']} but found {name}", chunk)

    def chapter(self, m, chunk):
        if self.prev not in ("title", "description", "verse"):
            self._error("Chapter start in incorrect location", chunk)
        self._setname(m.group('book'), chunk)
        chaps = self.books[-1]['chapters']
        num = int(m.group('num'))
        if num != len(chaps) + 1 or int(m.group('chap')) != num:
            self._error(f"Expected chapter {len(chaps) + 1}", chunk)
        chaps.append([])
        self.prev = "chapter"

    def verse(self, m, chunk):
        if self.prev is None:
            self._error("Verse in incorrect location", chunk)
        self._setname(m.group('book'), chunk)
        chaps = self.books[-1]['chapters']
        if self.prev in ("title", "description"):
            if len(chaps):
                self._error("Verse in incorrect location", chunk)
            chaps.append([])        # single chapter books have no chapter heading
        if int(m.group('chap')) != len(chaps):
            self._error(f"Expected a verse in chapter {len(chaps)}", chunk)
        num = int(m.group('num'))
        if num != len(chaps[-1]) + 1 or int(m.group('verse')) != num:
            self._error(f"Parser thought this verse was {len(chaps[-1]) + 1} but text says it's verse {num}", chunk)
        chaps[-1].append(" ".join(m.group('text').split()))
        self.prev = "verse"

    def corpus(self) -> Corpus:
        if not len(self.books):
            raise CorpusInvalid("No books found")
        books = []
        seen = set()
        for i, b in enumerate(self.books):
            if b['name'] is None or not all(len(c) for c in b['chapters']):
                raise CorpusInvalid(f"{b['title']} has a chapter with no verses")
            key = normname(b['name'])
            if key in seen:
                raise CorpusInvalid(f"{b['name']} occurs twice")
            seen.add(key)
            if key not in _booknames:
                raise CorpusInvalid(f"Unknown book {b['name']}")
            name, abbr, slug = _booknames[key]
            books.append(Book(i, name, abbr, slug, tuple(len(c) for c in b['chapters']),
                              title=b['title'], description=b['description']))
        logger.debug(f"read {len(books)} books")
        return Corpus(books, [b['chapters'] for b in self.books])


corpora = {}
_corpus = None
_corpuslock = threading.Lock()

def corpuspath() -> str:
    ''' Where the default corpus is read from: $BOMREF_CORPUS, else data/gutenberg.txt
        in this package. The text is not shipped: fetch the Plain Text UTF-8
        edition from CORPUS_URL and cut it to run from THE FIRST BOOK OF NEPHI
        to the last verse of Moroni. '''
    return os.environ.get(CORPUS_ENV) or os.path.join(os.path.dirname(__file__), "data", "gutenberg.txt")

def cached_corpus(fname):
    ''' Loads a corpus from a file, once per file name '''
    if fname is None:
        return defaultCorpus()
    with _corpuslock:
        if fname not in corpora:
            corpora[fname] = Corpus.fromGutenberg(fname)
    return corpora[fname]

def defaultCorpus() -> Corpus:
    ''' The process wide corpus, loaded from corpuspath() on first use '''
    global _corpus
    if _corpus is None:
        with _corpuslock:
            if _corpus is None:
                fname = corpuspath()
                logger.info(f"loading corpus from {fname}")
                try:
                    _corpus = Corpus.fromGutenberg(fname)
                except CorpusNotFound as e:
                    raise CorpusNotFound(f"No corpus at {fname}. Download the plain text from"
                                         f" {CORPUS_URL} and set {CORPUS_ENV} to its path") from e
    return _corpus

def initCorpus(src=None) -> Corpus:
    ''' Installs the process wide corpus. src may be a Corpus or anything
        Corpus.fromGutenberg() accepts, defaulting to corpuspath() '''
    global _corpus
    if isinstance(src, Corpus):
        corpus = src
    else:
        corpus = Corpus.fromGutenberg(src if src is not None else corpuspath())
    with _corpuslock:
        _corpus = corpus
    return corpus
