import warnings


class FamError(Exception):
    """Base class for all errors raised while reading a .fam file."""


class FormatError(FamError):
    """
    A line of the file does not have the expected content.

    Parameters:
    line : int or None
        1-based line number in the file, None if not tied to a line
    expected : str
        Description of what was expected on the line
    found : str
        The actual content of the line
    """
    def __init__(self, line, expected, found):
        self.line = line
        self.expected = expected
        self.found = found
        where = f"line {line}" if line is not None else "the file"
        super().__init__(f'Expected {where} to be {expected}, but found: "{found}"')


class UnsupportedFeatureError(FamError):
    """The file is well-formed but uses a Familias feature that is not implemented."""


class AmbiguityError(FamError):
    """The sex of a DVI parent cannot be decided from its co-parents."""


class ResourceError(FamError):
    """The input file is not a .fam file, or could not be found or fetched."""


class DataIntegrityWarning(UserWarning):
    pass


class Diagnostics:
    """
    Collects non-fatal problems found during parsing.

    Every message is stored (so it can be attached to the result) and also
    issued as a DataIntegrityWarning.
    """
    def __init__(self):
        self.messages = []

    def warn(self, msg):
        self.messages.append(msg)
        warnings.warn(msg, DataIntegrityWarning, stacklevel=3)

    def __len__(self):
        return len(self.messages)

    def __iter__(self):
        return iter(self.messages)

    def __repr__(self):
        return f"Diagnostics({self.messages})"
