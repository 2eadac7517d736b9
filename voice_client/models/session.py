"""
Session outcome types.

A SessionResult records whether setup and the hold succeeded, which resources
were created, and the outcome of every teardown step.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TeardownStep(BaseModel):
    """Outcome of one teardown step."""

    name: str
    attempted: bool = False
    succeeded: bool = False
    error: Optional[str] = None


class SessionResult(BaseModel):
    """Observable result of ``SessionController.run_session``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    succeeded: bool = False
    error: Optional[BaseException] = Field(None, exclude=True)
    model_name: Optional[str] = None
    agent_id: Optional[str] = None
    listener_id: Optional[str] = None
    relay_opened: bool = False
    teardown: List[TeardownStep] = Field(default_factory=list)

    def step(self, name: str) -> Optional[TeardownStep]:
        """Return the teardown step with the given name, if recorded."""
        for step in self.teardown:
            if step.name == name:
                return step
        return None

    @property
    def ok(self) -> bool:
        """True when setup, the hold, and every teardown step succeeded."""
        return self.succeeded and not self.teardown_failures

    @property
    def teardown_failures(self) -> List[TeardownStep]:
        return [s for s in self.teardown if s.attempted and not s.succeeded]

    def summary(self) -> str:
        """Single-line success or aggregated failure summary."""
        if self.ok:
            return "Session completed successfully"

        parts = []
        if self.error is not None:
            parts.append(f"{type(self.error).__name__}: {self.error}")
        for step in self.teardown_failures:
            parts.append(f"teardown {step.name} failed: {step.error}")
        if not parts:
            parts.append("session did not complete")
        return "Session failed: " + "; ".join(parts)
