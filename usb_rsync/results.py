"""Phase results and the accumulated run outcome."""

from enum import Enum
from typing import List, Optional

ERRORS_EXIT_CODE = 1


class PhaseStatus(Enum):
    SUCCESS = "success"
    FATAL = "fatal"  # stop the run right away
    RECORDED = "recorded"  # remember the error, keep going


class PhaseResult:
    """Result of a single backup phase."""

    def __init__(
        self,
        phase: str,
        status: PhaseStatus,
        exit_code: int = 0,
        errors: Optional[List[str]] = None,
    ):
        self.phase = phase
        self.status = status
        self.exit_code = exit_code
        self.errors = errors or []

    @classmethod
    def success(cls, phase: str) -> "PhaseResult":
        return cls(phase, PhaseStatus.SUCCESS)

    @classmethod
    def fatal(cls, phase: str, exit_code: int, error: str) -> "PhaseResult":
        return cls(phase, PhaseStatus.FATAL, exit_code=exit_code, errors=[error])

    @classmethod
    def recorded(cls, phase: str, errors: List[str]) -> "PhaseResult":
        return cls(phase, PhaseStatus.RECORDED, exit_code=ERRORS_EXIT_CODE, errors=errors)

    @property
    def is_fatal(self) -> bool:
        return self.status is PhaseStatus.FATAL

    @property
    def has_errors(self) -> bool:
        return self.status is not PhaseStatus.SUCCESS

    def __repr__(self) -> str:
        return f"PhaseResult({self.phase!r}, {self.status.value}, exit_code={self.exit_code})"


class RunOutcome:
    """All phase results of one run and the exit code they add up to."""

    def __init__(self, results: Optional[List[PhaseResult]] = None, privileged: bool = True):
        self.results = results or []
        self.privileged = privileged

    def add(self, result: PhaseResult) -> PhaseResult:
        self.results.append(result)
        return result

    @property
    def fatal(self) -> Optional[PhaseResult]:
        """The result that aborted the run, if any."""
        return next((r for r in self.results if r.is_fatal), None)

    @property
    def has_errors(self) -> bool:
        """True once any phase recorded an error. Never cleared."""
        return any(r.has_errors for r in self.results)

    @property
    def errors(self) -> List[str]:
        return [error for r in self.results for error in r.errors]

    @property
    def phases(self) -> List[str]:
        return [r.phase for r in self.results]

    @property
    def exit_code(self) -> int:
        fatal = self.fatal
        if fatal is not None:
            return fatal.exit_code
        return ERRORS_EXIT_CODE if self.has_errors else 0
