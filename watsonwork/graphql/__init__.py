from .fields import FieldSpec, ensure_required_field, project

__all__ = ["FieldSpec", "ensure_required_field", "project"]
