# formula_guru/errors.py


class FormulaValidationError(Exception):
    """
    A candidate formula that cannot be returned as-is.

    These never leave the generation loop: the orchestrator turns them into a
    retry or into the fixed fallback answer. `reason` is user-facing text.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class UpstreamFormatError(FormulaValidationError):
    pass


class ShadeValidationError(FormulaValidationError):
    pass


class RatioOrDeveloperMissingError(FormulaValidationError):
    pass


class UnknownBrandError(KeyError):
    pass
