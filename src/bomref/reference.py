#!/usr/bin/env python3

from typing import Optional, List, Dict
from dataclasses import dataclass, asdict, is_dataclass
from collections import UserList
import json
from bomref.corpus import Address, Verse, Corpus, defaultCorpus

RANGE_MARK = "–"       # en dash
STUDY_URL = "https://www.churchofjesuschrist.org/study/scriptures/bofm/{slug}/{chapter}?lang=eng"


@dataclass(frozen=True)
class VerseRange:
    first: Address
    last: Address

    def __post_init__(self):
        if self.first.book != self.last.book:
            raise ValueError(f"{self.first=} and {self.last=} are in different books")
        if self.last < self.first:
            raise ValueError(f"{self.first=} is after {self.last=}")

    @property
    def book(self) -> int:
        return self.first.book

    def __contains__(self, o):
        """ Tests for entire containment of an Address or VerseRange """
        if isinstance(o, VerseRange):
            return self.first <= o.first and o.last <= self.last
        return self.first <= o <= self.last

    def iswhole(self, corpus: Corpus) -> bool:
        """ Starts at the first verse of a chapter and ends at the last verse
            of a chapter, so covers whole chapters only """
        return self.first.verse == 1 and self.last.verse == corpus.verseCount(self.book, self.last.chapter)

    def addresses(self, corpus: Corpus):
        a = self.first
        while a is not None and a <= self.last:
            yield a
            a = corpus.successor(a)

    def versecount(self, corpus: Corpus) -> int:
        return corpus.distance(self.first, self.last) + 1

    def str(self, corpus: Optional[Corpus] = None) -> str:
        if corpus is None:
            corpus = defaultCorpus()
        body = _chapterstr(self) if self.iswhole(corpus) else _versestr(self)
        return f"{corpus.book(self.book).abbreviation} {body}"

    def url(self, corpus: Optional[Corpus] = None) -> Optional[str]:
        ''' Study page on churchofjesuschrist.org for a range within one chapter '''
        if self.first.chapter != self.last.chapter:
            return None
        if corpus is None:
            corpus = defaultCorpus()
        res = STUDY_URL.format(slug=corpus.book(self.book).slug, chapter=self.first.chapter)
        if not self.iswhole(corpus):
            res += "&id=p{0}-p{1}#p{0}".format(self.first.verse, self.last.verse)
        return res


def _chapterstr(r: VerseRange) -> str:
    if r.first.chapter == r.last.chapter:
        return str(r.first.chapter)
    return f"{r.first.chapter}{RANGE_MARK}{r.last.chapter}"

def _versestr(r: VerseRange, withchap: bool = True) -> str:
    res = [f"{r.first.chapter}:{r.first.verse}" if withchap else str(r.first.verse)]
    if r.first.chapter != r.last.chapter:
        res.append(f"{RANGE_MARK}{r.last.chapter}:{r.last.verse}")
    elif r.first.verse != r.last.verse:
        res.append(f"{RANGE_MARK}{r.last.verse}")
    return "".join(res)

def _onechap(r: VerseRange) -> bool:
    return r.first.chapter == r.last.chapter


def merge(ranges, corpus: Corpus) -> List[VerseRange]:
    ''' Sorts and merges overlapping or adjacent ranges within each book '''
    res = []
    for r in sorted(ranges, key=lambda x: (x.first, x.last)):
        if len(res) and res[-1].book == r.book:
            acc = res[-1]
            if r.first <= acc.last or r.first == corpus.successor(acc.last):
                if r.last > acc.last:
                    res[-1] = VerseRange(acc.first, r.last)
                continue
        res.append(r)
    return res

def render(ranges, corpus: Corpus) -> str:
    ''' Citation text for sorted disjoint ranges. Whole chapters in a book
        are listed with commas, as are verses in the same chapter. Anything
        else restates the book after a semicolon. '''
    res = []
    prev = None
    prevwhole = False
    for r in ranges:
        whole = r.iswhole(corpus)
        name = corpus.book(r.book).abbreviation
        if prev is not None and prev.book == r.book and whole and prevwhole:
            res.append(", " + _chapterstr(r))
        elif prev is not None and prev.book == r.book and not whole and not prevwhole \
                and _onechap(prev) and _onechap(r) and prev.first.chapter == r.first.chapter:
            res.append(", " + _versestr(r, withchap=False))
        else:
            if prev is not None:
                res.append("; ")
            res.append(f"{name} {_chapterstr(r) if whole else _versestr(r)}")
        prev, prevwhole = r, whole
    return "".join(res)


class VerseSequence:
    ''' The verses of a list of ranges, looked up as they are iterated. Can be
        iterated any number of times. '''

    def __init__(self, ranges, corpus: Corpus):
        self.ranges = list(ranges)
        self.corpus = corpus

    def __iter__(self):
        for r in self.ranges:
            for a in r.addresses(self.corpus):
                yield self.corpus.verse(a)

    def __len__(self):
        return sum(r.versecount(self.corpus) for r in self.ranges)


class Reference(UserList):
    ''' A list of VerseRanges kept sorted, with overlapping and adjacent ranges
        in a book merged. Content may be a citation string or VerseRanges. After
        changing the list directly, call simplify() to restore that. '''

    def __init__(self, content=None, corpus: Optional[Corpus] = None, simplify: bool = True):
        if corpus is None and isinstance(content, Reference):
            corpus = content._corpus
        self._corpus = corpus
        if content is None:
            super().__init__()
        elif isinstance(content, (str, bytes, bytearray)):
            from bomref.refparser import parseRanges
            super().__init__(parseRanges(content, corpus=self.corpus))
        elif isinstance(content, VerseRange):
            super().__init__([content])
        else:
            super().__init__(content)
        if simplify and len(self.data):
            self.simplify()

    @property
    def corpus(self) -> Corpus:
        return self._corpus if self._corpus is not None else defaultCorpus()

    def __getitem__(self, i):
        if isinstance(i, slice):
            return self.__class__(self.data[i], corpus=self._corpus, simplify=False)
        return self.data[i]

    def simplify(self):
        self.data[:] = merge(self.data, self.corpus)
        return self

    def books(self) -> Dict[int, List[VerseRange]]:
        ''' Ranges grouped by book ordinal, in order '''
        res = {}
        for r in self.data:
            res.setdefault(r.book, []).append(r)
        return res

    def __str__(self):
        return self.str()

    def __repr__(self):
        return "Reference({!r})".format(self.data)

    def str(self) -> str:
        return render(self.data, self.corpus)

    def verses(self) -> VerseSequence:
        return VerseSequence(self.data, self.corpus)

    def asdata(self) -> List[dict]:
        return [asdict(r) for r in self.data]


class ReferenceJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Reference):
            return obj.asdata()
        elif is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)
        return super().default(obj)
