#!/usr/bin/env python3

from typing import Optional, List
from bomref.corpus import Corpus, Book, Address, Verse, defaultCorpus, initCorpus, cached_corpus
from bomref.reference import Reference, VerseRange, VerseSequence, ReferenceJSONEncoder
from bomref.errors import ParseError, EmptyInput, UnknownBook, MalformedNumber, InvalidRange, \
                          OutOfRange, CorpusLookupError, BookOutOfRange, ChapterOutOfRange, \
                          VerseOutOfRange, CorpusError, CorpusNotFound, CorpusInvalid

def _corpus(corpus):
    return corpus if corpus is not None else defaultCorpus()

def parseReference(text, corpus: Optional[Corpus] = None) -> Reference:
    """ Parses a citation into a canonical Reference """
    return Reference(text, corpus=_corpus(corpus))

def canonicalize(text, corpus: Optional[Corpus] = None) -> str:
    """ Returns the canonical citation text, e.g. 'Alma 3:18-19, 16-17' -> 'Alma 3:16–19' """
    return parseReference(text, corpus=corpus).str()

def versesIn(reference, corpus: Optional[Corpus] = None) -> VerseSequence:
    if not isinstance(reference, Reference):
        reference = Reference(reference, corpus=_corpus(corpus))
    elif corpus is not None:
        reference = Reference(reference.data, corpus=corpus)
    return reference.verses()

def verseAt(address: Address, corpus: Optional[Corpus] = None) -> Verse:
    return _corpus(corpus).verse(address)

def randomVerse(rng=None, corpus: Optional[Corpus] = None) -> Verse:
    c = _corpus(corpus)
    return c.verse(c.randomAddress(rng))

def listBooks(corpus: Optional[Corpus] = None) -> List[dict]:
    return [{'name': b.name, 'abbreviation': b.abbreviation, 'aliases': b.aliases,
             'chapters': b.chapterCount} for b in _corpus(corpus).books]


def main(argv=None):

    import argparse, logging, sys, random

    parser = argparse.ArgumentParser(description="Book of Mormon citation tool")
    parser.add_argument("refs",nargs="*",help="Citations to canonicalise")
    parser.add_argument("-c","--corpus",help="Gutenberg text of the Book of Mormon [$BOMREF_CORPUS]")
    parser.add_argument("-t","--text",action="store_true",help="Output the text of each verse")
    parser.add_argument("-r","--random",action="store_true",help="Output a random verse")
    parser.add_argument("-B","--books",action="store_true",help="List the books and their chapter counts")
    parser.add_argument("-l","--logging",help="Set logging level to bomref.log")
    parser.add_argument("-q","--quiet",action="store_true",help="Don't say much")
    args = parser.parse_args(argv)

    if args.logging:
        try:
            loglevel = int(args.logging)
        except ValueError:
            loglevel = getattr(logging, args.logging.upper(), None)
        if isinstance(loglevel, int):
            parms = {'level':  loglevel, 'datefmt': '%d/%b/%Y %H:%M:%S',
                     'format': '%(asctime)s.%(msecs)03d %(levelname)s:%(module)s(%(lineno)d) %(message)s'}
            logfh = open("bomref.log", "w", encoding="utf-8")
            parms.update(stream=logfh)
            logging.basicConfig(**parms)
        log = logging.getLogger('bomref')
    else:
        log = None

    def doerror(msg, doexit=True):
        if log:
            log.error(msg)
        if not args.quiet:
            print(msg)
        if doexit:
            sys.exit(1)

    try:
        corpus = cached_corpus(args.corpus)
    except CorpusError as e:
        doerror(f"Unable to load corpus: {e}")

    if args.books:
        for b in listBooks(corpus=corpus):
            print(f"{b['name']} ({b['abbreviation']}): {b['chapters']}")
    if args.random:
        print(randomVerse(random.Random(), corpus=corpus))
    for s in args.refs:
        try:
            ref = parseReference(s, corpus=corpus)
        except ParseError as e:
            doerror(f"{s}: {e}")
        if log:
            log.info(f"{s} -> {ref}")
        print(ref)
        if args.text:
            for v in ref.verses():
                print(v)

if __name__ == "__main__":
    main()
