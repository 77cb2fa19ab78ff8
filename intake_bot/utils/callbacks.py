"""Callback data used by inline buttons."""

from typing import Dict, Optional


class Callbacks:
    """Predefined callback data strings."""

    # Survey actions
    SURVEY_START = "survey:start"
    SURVEY_CANCEL = "survey:cancel"

    # Help actions
    HELP = "help"


# Inline actions resolve to the same logical commands as typed ones.
ACTION_COMMANDS: Dict[str, str] = {
    Callbacks.SURVEY_START: "survey",
    Callbacks.SURVEY_CANCEL: "cancel",
    Callbacks.HELP: "help",
}


def command_for_action(action_id: Optional[str]) -> Optional[str]:
    """Return the logical command name for an inline action, if any."""
    if not action_id:
        return None
    return ACTION_COMMANDS.get(action_id)
