"""Authentication and pagination pattern detectors."""

from speclens.patterns.auth import detect_auth_patterns
from speclens.patterns.pagination import detect_pagination_pattern, detect_spec_pagination

__all__ = ["detect_auth_patterns", "detect_pagination_pattern", "detect_spec_pagination"]
