"""Validation wrapper layer between record builders and the store.

Validates dicts against Pydantic models and raises ``ValidationFailed``
with one message per offending field. Soft-validation warnings emitted by
model validators are logged, not raised.
"""

import logging
import warnings

from pydantic import BaseModel, ValidationError

from diskiadmin.exceptions import ValidationFailed

logger = logging.getLogger(__name__)


def _validate(data: dict, model_cls: type[BaseModel], context: dict) -> BaseModel:
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        model = model_cls.model_validate(data)

    for w in caught:
        logger.warning(
            "Validation warning for %s (%s): %s",
            model_cls.__name__,
            _describe(context),
            w.message,
        )
    return model


def _describe(context: dict) -> str:
    return ", ".join(f"{k}={v}" for k, v in context.items()) or "no context"


def validate_or_raise(
    data: dict,
    model_cls: type[BaseModel],
    context: dict | None = None,
) -> BaseModel:
    """Validate a dict, raising ``ValidationFailed`` on error.

    Used for admin form input and for records that must not be written
    half-valid. The message lists each offending field so the CLI can show
    it as is.
    """
    try:
        return _validate(data, model_cls, context or {})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'form'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationFailed(f"Invalid {model_cls.__name__}: {problems}") from e
