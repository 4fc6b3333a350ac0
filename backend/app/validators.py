"""Input validation for container references and lifecycle actions.

Container references end up in Docker Engine API paths, so anything outside
Docker's naming rules is rejected before a request is made.
"""

from __future__ import annotations

import re

from app.schemas.container import ContainerAction


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


ALLOWED_ACTIONS = {action.value for action in ContainerAction}

INVALID_ACTION_MESSAGE = "invalid action: must be one of start, stop, restart, pause, unpause"


def validate_container_id(container_id: str) -> str:
    """Validate a Docker container id or name.

    Accepted references match Docker's naming rules:
    - Alphanumeric, hyphens, underscores, dots
    - Cannot start with a hyphen, underscore or dot
    - At most 128 characters

    Returns the stripped reference.
    Raises ValidationError if invalid.
    """
    if not container_id or not container_id.strip():
        raise ValidationError("missing container id")

    container_id = container_id.strip()

    if len(container_id) > 128:
        raise ValidationError("Container id too long")

    if not re.match(r'^[a-zA-Z0-9][a-zA-Z0-9_.-]*$', container_id):
        raise ValidationError(
            "Container id must be alphanumeric with optional "
            "hyphens, underscores, and dots"
        )

    return container_id


def validate_action(action: str) -> str:
    """Validate a lifecycle action name (case-sensitive)."""
    if action not in ALLOWED_ACTIONS:
        raise ValidationError(INVALID_ACTION_MESSAGE)
    return action
