import os
import logging

logger = logging.getLogger(__name__)

def readsrc(src):
    ''' Returns the text of src which may be a file object, a path or the
        text itself. Raises FileNotFoundError for a path that does not exist '''
    if hasattr(src, "read"):
        data = src.read()
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return data
    elif isinstance(src, os.PathLike):
        src = os.fspath(src)
    if not isinstance(src, str):
        raise TypeError(f"Cannot read text from {type(src).__name__}")
    elif len(src) < 256 and "\n" not in src and os.path.exists(src):
        logger.debug(f"reading {src}")
        with open(src, encoding="utf-8-sig") as inf:
            data = inf.read()
        return data
    elif "\n" in src or len(src) > 255:
        return src
    else:
        raise FileNotFoundError(src)
