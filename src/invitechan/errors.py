class InvitechanError(Exception):
    """Base class for failures surfaced to the requesting user."""


class DirectoryError(InvitechanError):
    """Listing the bot's channels failed; the cached snapshot is left as it was."""


class ActuatorError(InvitechanError):
    """An invite or kick was rejected by the platform.

    ``code`` carries the platform error code (e.g. ``already_in_channel``)
    and is what the user sees.
    """

    def __init__(self, code: str, channel_id: str = "", user_id: str = "") -> None:
        super().__init__(code)
        self.code = code
        self.channel_id = channel_id
        self.user_id = user_id


class CredentialError(InvitechanError):
    """No usable credential for the workspace."""


class CredentialNotFoundError(CredentialError):
    def __init__(self, team_id: str) -> None:
        super().__init__(f"no credentials installed for team {team_id!r}")
        self.team_id = team_id


class CommandDecodeError(InvitechanError):
    """An inbound payload does not have the shape of a command."""


class NotifierError(InvitechanError):
    """A reply could not be delivered."""
