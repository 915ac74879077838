"""Design plan — dataclasses, validation, and serialization."""

from .models import (
    Dimensions, Port, PcbMounting, Ventilation, Lid, DesignPlan,
)
from .validation import validate, validate_with_report
from .serialization import plan_to_dict

__all__ = [
    # Models
    "Dimensions", "Port", "PcbMounting", "Ventilation", "Lid", "DesignPlan",
    # Validation / Serialization
    "validate", "validate_with_report", "plan_to_dict",
]
