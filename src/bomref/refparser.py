''' Citation parser.

    reference   := segment (';' segment)*
    segment     := bookName (chapterList | chapter ':' verseList)?
    chapterList := chapterSpec (',' chapterSpec)*
    chapterSpec := number ('-' number)?
    verseList   := verseItem (',' verseItem)*
    verseItem   := number ('-' number (':' number)?)?
    bookName    := (number '-'?)? word ('-'? word)*

    Whitespace between tokens is ignored and -, en dash and em dash all mark
    a range. Every segment names its book.
'''

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple
from bomref.corpus import Address, Corpus, defaultCorpus
from bomref.errors import EmptyInput, UnknownBook, MalformedNumber, InvalidRange, OutOfRange
from bomref.reference import VerseRange
import logging

logger = logging.getLogger(__name__)

RANGE_DASHES = "-–—"
MAXDIGITS = 9

_tokenre = re.compile(r"""(?P<ws>\s+)
                        | (?P<num>[0-9]+)
                        | (?P<word>[^\W\d_]+\.?)
                        | (?P<colon>:)
                        | (?P<semi>;)
                        | (?P<comma>,)
                        | (?P<dash>[{}])
                        | (?P<other>.)""".format(RANGE_DASHES), flags=re.X|re.S)


@dataclass
class Token:
    kind: str
    value: str
    pos: int

    def describe(self):
        if self.kind == "end":
            return "end of reference"
        return f"'{self.value}' at {self.pos}"


def tokenize(s: str):
    for m in _tokenre.finditer(s):
        if m.lastgroup != "ws":
            yield Token(m.lastgroup, m.group(0), m.start())
    yield Token("end", "", len(s))


class RefParser:
    ''' Turns a citation into a list of VerseRanges resolved against corpus.
        Raises one of the ParseError subclasses on the first problem found. '''

    def __init__(self, corpus: Optional[Corpus] = None):
        self.corpus = corpus if corpus is not None else defaultCorpus()
        self.toks = []
        self.i = 0

    def peek(self, ahead: int = 0) -> Token:
        return self.toks[min(self.i + ahead, len(self.toks) - 1)]

    def next(self) -> Token:
        res = self.peek()
        if self.i < len(self.toks) - 1:
            self.i += 1
        return res

    def unexpected(self, t: Token):
        raise MalformedNumber(f"Unexpected {t.describe()}", t.pos)

    def number(self) -> Tuple[int, int]:
        t = self.next()
        if t.kind != "num":
            raise MalformedNumber(f"Expected a number but found {t.describe()}", t.pos)
        if len(t.value.lstrip("0")) > MAXDIGITS:
            raise OutOfRange(f"Number {t.value[:12]}... at {t.pos} is too large", t.pos)
        return int(t.value.lstrip("0") or "0"), t.pos

    def parse(self, s) -> List[VerseRange]:
        if isinstance(s, (bytes, bytearray)):
            s = bytes(s).decode("utf-8", errors="replace")
        if s is None or not s.strip():
            raise EmptyInput("Empty reference", 0)
        self.toks = list(tokenize(s))
        self.i = 0
        res = []
        while True:
            res.extend(self.segment())
            t = self.next()
            if t.kind == "end":
                break
            elif t.kind != "semi":
                self.unexpected(t)
        return res

    def segment(self) -> List[VerseRange]:
        t = self.peek()
        if t.kind in ("semi", "end"):
            raise EmptyInput(f"Empty citation at {t.pos}", t.pos)
        bk = self.bookname()
        t = self.peek()
        if t.kind in ("semi", "end"):
            return [VerseRange(self.corpus.firstverse(bk), self.corpus.lastverse(bk))]
        elif t.kind != "num":
            self.unexpected(t)
        chap, pos = self.number()
        if self.peek().kind == "colon":
            self.next()
            res = self.verselist(bk, chap, pos)
        else:
            res = self.chapterlist(bk, chap, pos)
        t = self.peek()
        if t.kind not in ("semi", "end"):
            self.unexpected(t)
        return res

    def bookname(self) -> int:
        start = self.peek().pos
        words = []
        # a dash between words is part of the name, as in the slugs 1-ne and w-of-m
        if self.peek().kind == "num" and (self.peek(1).kind == "word"
                    or self.peek(1).kind == "dash" and self.peek(2).kind == "word"):
            words.append(self.next().value)
            if self.peek().kind == "dash":
                self.next()
        if self.peek().kind != "word":
            raise UnknownBook(f"Expected a book name but found {self.peek().describe()}", start)
        while True:
            words.append(self.next().value)
            if self.peek().kind == "dash" and self.peek(1).kind == "word":
                self.next()
            elif self.peek().kind != "word":
                break
        name = " ".join(words)
        try:
            return self.corpus.resolveBookName(name)
        except UnknownBook:
            raise UnknownBook(f"Unknown book '{name}' at {start}", start) from None

    def checkchapter(self, bk: int, chap: int, pos: int):
        if chap < 1 or chap > self.corpus.chapterCount(bk):
            raise OutOfRange(f"{self.corpus.book(bk).name} has no chapter {chap} (at {pos})", pos)

    def checkverse(self, addr: Address, pos: int):
        if not self.corpus.isvalid(addr):
            raise OutOfRange(f"{self.corpus.book(addr.book).name} {addr.chapter}:{addr.verse}"
                             f" (at {pos}) is not in the corpus", pos)

    def chapterlist(self, bk: int, chap: int, pos: int) -> List[VerseRange]:
        res = []
        while True:
            last, lastpos = chap, pos
            if self.peek().kind == "dash":
                self.next()
                last, lastpos = self.number()
                if self.peek().kind == "colon":
                    raise InvalidRange(f"Chapter range at {pos} cannot take a verse list", pos)
                if last < chap:
                    raise InvalidRange(f"Chapter range {chap}-{last} at {pos} runs backwards", pos)
            self.checkchapter(bk, chap, pos)
            self.checkchapter(bk, last, lastpos)
            res.append(VerseRange(Address(bk, chap, 1), self.corpus.lastverse(bk, last)))
            if self.peek().kind != "comma":
                break
            self.next()
            chap, pos = self.number()
        return res

    def verselist(self, bk: int, chap: int, pos: int) -> List[VerseRange]:
        ''' Verses in chap. An item may run into a later chapter (3:5-4:2) after
            which following items are in that chapter. '''
        self.checkchapter(bk, chap, pos)
        res = []
        while True:
            verse, vpos = self.number()
            endchap, endverse, endpos = chap, verse, vpos
            if self.peek().kind == "dash":
                self.next()
                endverse, endpos = self.number()
                if self.peek().kind == "colon":
                    self.next()
                    endchap = endverse
                    endverse, _ = self.number()
            first = Address(bk, chap, verse)
            last = Address(bk, endchap, endverse)
            if last < first:
                raise InvalidRange(f"Range at {vpos} ends before it starts", vpos)
            self.checkverse(first, vpos)
            self.checkverse(last, endpos)
            res.append(VerseRange(first, last))
            chap = endchap
            if self.peek().kind != "comma":
                break
            self.next()
        return res


def parseRanges(s, corpus: Optional[Corpus] = None) -> List[VerseRange]:
    ''' Parses a citation into its ranges, unmerged and in citation order '''
    res = RefParser(corpus).parse(s)
    logger.debug(f"parsed {s!r} into {len(res)} ranges")
    return res
