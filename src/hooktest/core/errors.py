"""Exception taxonomy shared by the registry, the assertion engine and the scheduler."""
from __future__ import annotations


class HookTestError(Exception):
    """Base class for all hooktest errors."""


class RegistrationError(HookTestError):
    """A declaration was rejected at registration time."""


class InvalidModifierCombination(RegistrationError):
    pass


class DuplicateTitle(RegistrationError):
    pass


class MissingTitle(RegistrationError):
    pass


class UnitError(HookTestError):
    """Failure that is fatal to a single unit; recorded, never raised out of the scheduler."""

    kind = "UnitError"


class PlanAlreadySet(UnitError):
    kind = "PlanAlreadySet"


class PlanMismatch(UnitError):
    kind = "PlanMismatch"


class MultipleCallbackEnd(UnitError):
    kind = "MultipleCallbackEnd"


class CallbackNeverCalled(UnitError):
    kind = "CallbackNeverCalled"


class UnitTimeout(UnitError):
    kind = "UnitTimeout"


class HookFailure(UnitError):
    kind = "HookFailure"


class ExpectedFailureButPassed(UnitError):
    kind = "ExpectedFailureButPassed"


class CallbackError(UnitError):
    kind = "CallbackError"


class NoAssertions(UnitError):
    kind = "NoAssertions"
