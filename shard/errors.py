
class ShardError(Exception):
    """ Base class for all shard errors"""
    pass

class ShardSyntaxError(ShardError):
    """ Raised when a directive or generated unit cannot be parsed"""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        super().__init__(message)
        self.line = line
        self.column = column

class ShardMacroError(ShardError):
    """ Raised when a macro call is malformed or has the wrong number of arguments"""

class ShardCompileError(ShardError):
    """ Raised when the compiler rejects a fragment; carries the diagnostics"""

    def __init__(self, source: str, diagnostics):
        super().__init__(f"compilation of {source!r} failed")
        self.source = source
        self.diagnostics = list(diagnostics)

class ShardTypeError(ShardError):
    """ Raised when a name that should denote a type does not"""

class InvalidCastError(ShardError, TypeError):
    """ Raised at runtime when a cast in fragment code is not valid"""

class ShardCommandError(ShardError):
    """ Raised when a console directive cannot be carried out"""
