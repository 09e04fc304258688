from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credential:
    """Token pair installed for one workspace.

    The bot token lists channels and posts replies. The user token belongs
    to the installing admin and is used to invite or kick on a guest's
    behalf.
    """

    user_token: str
    bot_token: str
    installer_user_id: str = ""
    bot_user_id: str = ""
    # epoch seconds, as slack_sdk reports installations
    installed_at: float | None = field(default=None, compare=False)

    @property
    def valid(self) -> bool:
        return bool(self.user_token) and bool(self.bot_token)
