"""Form controller and configuration."""

from formstate.form.config import FormConfig, SubmitHandler, ValidatorErrorHook
from formstate.form.controller import FormController, SubmitResult, SubmitStatus

__all__ = [
    "FormConfig",
    "FormController",
    "SubmitHandler",
    "SubmitResult",
    "SubmitStatus",
    "ValidatorErrorHook",
]
