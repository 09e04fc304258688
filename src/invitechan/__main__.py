import signal
import threading

import structlog
from slack_sdk import WebClient

from invitechan.channels import ChannelCacheRegistry, SlackChannelDirectory
from invitechan.config import AppConfig, load_app_config
from invitechan.credentials import CredentialResolver, SqlCredentialStore
from invitechan.credentials.installation import CredentialInstallationStore
from invitechan.dispatcher import CommandDispatcher
from invitechan.membership import MembershipService, SlackMembershipActuator
from invitechan.messaging.notifier import SlackNotifier
from invitechan.messaging.platform import AbstractPlatform
from invitechan.messaging.slack import SlackPlatform
from invitechan.util import PROJECT_ROOT, load_yaml_config
from invitechan.util.db import configure_engine, init_db
from invitechan.util.logging import configure_logging

_logger = structlog.get_logger()
_OBSERVABILITY_CONFIG_PATH = PROJECT_ROOT / "config" / "observability.yaml"


def _init_logging() -> None:
    try:
        obs_config = load_yaml_config(_OBSERVABILITY_CONFIG_PATH)
        logging_config = obs_config.get("logging", {})
    except Exception:
        configure_logging()
        return

    json_output = logging_config.get("json_output", True)
    log_level = logging_config.get("log_level", "INFO")
    configure_logging(json_output=bool(json_output), log_level=str(log_level))


def build_dispatcher(config: AppConfig, store: SqlCredentialStore | None) -> CommandDispatcher:
    timeout = config.slack.http_timeout

    def web_client(token: str) -> WebClient:
        return WebClient(token=token, timeout=timeout)

    return CommandDispatcher(
        credentials=CredentialResolver(store=store, fixed=config.slack.fixed_credential),
        caches=ChannelCacheRegistry(
            directory_factory=lambda token: SlackChannelDirectory(web_client(token)),
            refresh_policy=config.cache.refresh_policy,
        ),
        membership=MembershipService(
            actuator_factory=lambda token: SlackMembershipActuator(web_client(token)),
        ),
        notifier=SlackNotifier(client_factory=web_client),
        refresh_timeout=config.cache.refresh_timeout,
    )


def wire_platform(platform: AbstractPlatform, dispatcher: CommandDispatcher) -> None:
    platform.on_command(dispatcher.handle)
    # the next read of a changed team re-enumerates its channels
    platform.on_channels_changed(dispatcher.caches.invalidate)


def main() -> None:
    _init_logging()
    config = load_app_config()

    store: SqlCredentialStore | None = None
    installation_store: CredentialInstallationStore | None = None
    if not config.slack.fixed_credential.valid:
        # per-workspace installs, validated as http mode with OAuth by SlackConfig
        configure_engine(config.database_url)
        init_db()
        store = SqlCredentialStore()
        installation_store = CredentialInstallationStore(store)

    dispatcher = build_dispatcher(config, store)
    platform = SlackPlatform(config.slack, installation_store=installation_store)
    wire_platform(platform, dispatcher)

    _logger.info(
        "wiring_bot",
        mode=config.slack.mode.value,
        command=config.slack.command,
        refresh_policy=config.cache.refresh_policy.value,
        multi_workspace=store is not None,
    )
    t = threading.Thread(target=platform.start, name="platform-slack", daemon=True)
    t.start()

    shutdown = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: shutdown.set())
    signal.signal(signal.SIGTERM, lambda *_: shutdown.set())
    shutdown.wait()
    _logger.info("shutdown_requested")


if __name__ == "__main__":
    main()
