"""
Submission forms

Each admin form (one per collection, settings, password, feedback) moves
through IDLE -> SUBMITTING -> SUCCESS | ERROR. A form that is SUBMITTING
refuses further submissions, so a repeated trigger cannot insert twice.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Optional, TypeVar

from errors import SubmissionInProgress

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FormState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    ERROR = "error"
    SUCCESS = "success"


class SubmissionForm:
    def __init__(self, name: str):
        self.name = name
        self.state = FormState.IDLE
        self.error: Optional[Exception] = None
        self._lock = threading.Lock()

    @property
    def is_submitting(self) -> bool:
        return self.state is FormState.SUBMITTING

    def submit(self, action: Callable[[], T]) -> T:
        """Run `action` as this form's single in-flight submission."""
        with self._lock:
            if self.is_submitting:
                raise SubmissionInProgress(f"The {self.name} form is already being submitted")
            self.state = FormState.SUBMITTING
            self.error = None
        try:
            result = action()
        except Exception as e:
            self.state = FormState.ERROR
            self.error = e
            logger.warning(f"{self.name} submission failed: {e}")
            raise
        self.state = FormState.SUCCESS
        return result

    def reset(self):
        with self._lock:
            if self.is_submitting:
                raise SubmissionInProgress(f"The {self.name} form is already being submitted")
            self.state = FormState.IDLE
            self.error = None

    def snapshot(self) -> dict:
        return {"state": self.state.value, "error": str(self.error) if self.error else None}
