"""
Domain error taxonomy.

- ValidationError: malformed / out-of-range input, names the offending field
- ReferenceNotFound: caller-supplied ids (do, grape) that do not exist
- NotFound: the target aggregate (wine, review) does not exist
- AlreadyExists: duplicate review for a (user, wine) pair
- Forbidden: the caller does not own the review it tries to change

Storage failures are not wrapped; they propagate as-is.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


class DomainError(Exception):
    code = "domain_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> Dict[str, Any]:
        return {}


class ValidationError(DomainError):
    code = "validation_error"

    def __init__(self, field: Optional[str], message: str) -> None:
        super().__init__(message)
        self.field = field

    def details(self) -> Dict[str, Any]:
        return {"field": self.field}


class ReferenceNotFound(DomainError):
    code = "reference_not_found"

    def __init__(self, resource: str, missing_ids: Iterable[int]) -> None:
        ids: List[int] = sorted(int(i) for i in missing_ids)
        super().__init__(f"{resource} not found for ids: {', '.join(str(i) for i in ids)}")
        self.resource = resource
        self.missing_ids = ids

    def details(self) -> Dict[str, Any]:
        return {"resource": self.resource, "missing_ids": self.missing_ids}


class NotFound(DomainError):
    code = "not_found"

    def __init__(self, resource: str, resource_id: int) -> None:
        super().__init__(f"{resource} not found for id {resource_id}")
        self.resource = resource
        self.resource_id = resource_id

    def details(self) -> Dict[str, Any]:
        return {"resource": self.resource, "id": self.resource_id}


class AlreadyExists(DomainError):
    code = "already_exists"

    def __init__(self, message: str, **keys: Any) -> None:
        super().__init__(message)
        self.keys = keys

    def details(self) -> Dict[str, Any]:
        return dict(self.keys)


class Forbidden(DomainError):
    code = "forbidden"

    def __init__(self, resource: str, resource_id: int, user_id: int) -> None:
        super().__init__(f"user {user_id} may not modify {resource} {resource_id}")
        self.resource = resource
        self.resource_id = resource_id
        self.user_id = user_id

    def details(self) -> Dict[str, Any]:
        return {"resource": self.resource, "id": self.resource_id, "user_id": self.user_id}
