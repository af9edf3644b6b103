import math
import re
from pathlib import Path

import requests

from .exceptions import FormatError, ResourceError

URL_PREFIXES = ("http", "www")

# Line breaks only; str.splitlines also splits on U+0085, \x0c etc.
LINE_BREAK = re.compile(r"\r\n|\r|\n")


def safe_num(text):
    """
    Convert text to float, returning None instead of failing.

    Parameters:
    text : str or None
        Text to convert

    Returns:
    float or None
    """
    if text is None:
        return None
    try:
        return float(text)
    except (TypeError, ValueError):
        return None


def read_int(value, line, description, max_value=math.inf, min_value=0):
    """
    Interpret `value` (the content of `line`) as an integer.

    Raises FormatError if the value is not an integer, or lies outside
    [`min_value`, `max_value`]. Counts and indices in a .fam file are
    never negative.
    """
    num = safe_num(value)
    if (num is None or not math.isfinite(num) or num != int(num)
            or num < min_value or num > max_value):
        raise FormatError(line, description, "" if value is None else value)
    return int(num)


def extract_labeled_number(text, label, pattern=r"[\.\d]+"):
    """
    Find the number following `label` in a free-text line, e.g.
    extract_labeled_number("(DatabaseSize = 600 , ...)", "DatabaseSize = ", r"\\d+")
    gives 600.0. Returns None if the label is absent or the match is not numeric.
    """
    if not text:
        return None
    m = re.search(re.escape(label) + "(" + pattern + ")", text)
    if m is None:
        return None
    return safe_num(m.group(1))


def get_id_mappings(ids):
    """
    Create mappings from id to 1-based index.

    Parameters:
    ids : list
        List of individual ids

    Returns:
    dict
        Dictionary mapping id to index (first occurrence wins)
    """
    out = {}
    for i, iid in enumerate(ids, start=1):
        out.setdefault(iid, i)
    return out


def is_url(path):
    return any(str(path).startswith(p) for p in URL_PREFIXES)


def load_fam_lines(famfile, verbose=True):
    """
    Read all lines of a .fam file, from disk or from a URL.

    Parameters:
    famfile : str | Path
        Path or URL ending in '.fam'
    verbose : bool, default True
        Print a message when reading from a URL

    Returns:
    list[str]
        The lines of the file, without line terminators
    """
    famfile = str(famfile)
    if not famfile.endswith(".fam"):
        raise ResourceError(f"Input file must end with '.fam': {famfile}")

    if is_url(famfile):
        if verbose:
            print("Reading from URL:", famfile)
        url = famfile if not famfile.startswith("www") else "https://" + famfile
        try:
            resp = requests.get(url, timeout=60)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ResourceError(f"Could not fetch {famfile}: {e}") from e
        content = resp.content
    else:
        path = Path(famfile).expanduser()
        if not path.is_file():
            raise ResourceError(f"File not found: {famfile}")
        content = path.read_bytes()

    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        # Familias writes Windows-1252
        text = content.decode("cp1252", errors="replace")
    lines = LINE_BREAK.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def strip_quotes(lines):
    return [line.replace('"', "") for line in lines]


class LineCursor:
    """
    Moving position in the 1-indexed line stream of a .fam file.

    Records are read relative to the current position (`peek`, `read_int`),
    after which the cursor is moved past the record with `advance`.
    """
    def __init__(self, lines, start=1):
        self.lines = lines
        self.pos = start

    def __len__(self):
        return len(self.lines)

    def line(self, lineno):
        """Content of absolute (1-based) line `lineno`, or None beyond the end."""
        if 1 <= lineno <= len(self.lines):
            return self.lines[lineno - 1]
        return None

    def peek(self, offset=0):
        return self.line(self.pos + offset)

    def read_int(self, offset, description, max_value=math.inf, value=None, min_value=0):
        lineno = self.pos + offset
        if value is None:
            value = self.line(lineno)
        return read_int(value, lineno, description, max_value=max_value, min_value=min_value)

    def read_num(self, offset):
        return safe_num(self.peek(offset))

    def advance(self, n):
        self.pos += n
        return self.pos

    def seek(self, lineno):
        self.pos = lineno
        return self.pos

    def __repr__(self):
        return f"LineCursor(pos={self.pos}, n_lines={len(self.lines)})"
