"""Exceptions raised while constructing a retina object.

Every error carries the pipeline stage it was raised in (``import``,
``map``, ``project``, ``interpolate`` or ``assemble``) and, where one
exists, the index of the offending input row.
"""


class RetinaError(Exception):

    def __init__(self, message, stage=None, index=None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.index = index

    def __str__(self):
        s = self.message
        if self.index is not None:
            s = '%s (row %d)' % (s, self.index)
        if self.stage is not None:
            s = '%s: %s' % (self.stage, s)
        return s


class ConfigurationError(RetinaError, ValueError):
    """Invalid construction parameters."""


class InputError(RetinaError, IOError):
    """Missing or malformed input data."""


class MappingError(RetinaError, RuntimeError):
    """The reconstruction oracle could not place a point on the hemisphere."""


class NumericalError(RetinaError, ArithmeticError):
    """Ill-posed or degenerate interpolation system."""


class AssemblyError(ConfigurationError):
    """Structurally inconsistent parts handed to the assembler."""
