# crimestat/utils/errors.py
class CrimeStatError(RuntimeError):
    """Base class for all crimestat errors."""


class UserInputError(CrimeStatError):
    """
    Raised for invalid user-provided config (dates, variable lists, etc).
    Should NOT print traceback.
    """


class ConfigurationError(CrimeStatError):
    """
    Fatal setup error: the job cannot start with the given configuration
    (e.g. no regression termination condition).
    """


class TypeMismatchError(CrimeStatError, TypeError):
    """
    Arithmetic between two Values of different variants.

    Never coerced: a silent coercion would corrupt running sums.
    """

    def __init__(self, op: str, left, right):
        self.op = op
        self.left = left
        self.right = right
        if left == right:
            msg = f"{op} is not defined for {left} values"
        else:
            msg = f"cannot {op} {left} and {right}: variants must match"
        super().__init__(msg)


class MissingCoefficientError(ConfigurationError):
    """
    A precomputed per-field count or a coefficient is missing for one or
    more variables. Raised before any example is processed.
    """

    def __init__(self, kind: str, missing: list[str]):
        self.kind = kind
        self.missing = list(missing)
        super().__init__(f"{kind} missing for {self.missing}")


class ZeroCountError(CrimeStatError, ZeroDivisionError):
    """Mean / variance requested over a zero observation count."""
