from typing import Optional


class ParseError(SyntaxError):
    ''' A citation could not be turned into a reference. pos is the offset
        into the citation string where the problem was found. '''

    def __init__(self, msg: str, pos: Optional[int] = None):
        super().__init__(msg)
        self.pos = pos


class EmptyInput(ParseError):
    pass

class UnknownBook(ParseError):
    pass

class MalformedNumber(ParseError):
    pass

class InvalidRange(ParseError):
    pass

class OutOfRange(ParseError):
    pass


class CorpusLookupError(LookupError):
    pass

class BookOutOfRange(CorpusLookupError):
    pass

class ChapterOutOfRange(CorpusLookupError):
    pass

class VerseOutOfRange(CorpusLookupError):
    pass


class CorpusError(Exception):
    pass

class CorpusNotFound(CorpusError, FileNotFoundError):
    pass

class CorpusInvalid(CorpusError, ValueError):
    pass
