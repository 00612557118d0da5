"""
Terminal chat client
====================
Composition root for running the widget core from a terminal: loads
settings, wires gateways, channel and orchestrator, prompts for name and
email when no session can be resumed, then relays stdin lines as messages.

Commands typed at the prompt:
    /reconnect   reconnect the realtime channel after a drop
    /quit        leave the chat
"""

import argparse
import asyncio
import sys
from typing import Optional, TextIO

from . import __version__
from .application.orchestrators.session_orchestrator import SessionOrchestrator
from .core.logger import configure_logging, get_logger
from .domain.interfaces.presentation import IConversationRenderer, INotifier, NoticeLevel
from .domain.interfaces.storage import IIdentityStore
from .domain.models.chat import Message
from .domain.models.context import ChatContext
from .infrastructure.config.config_loader import get_settings
from .infrastructure.config.settings import ChatSettings
from .infrastructure.gateways import ChatServiceClient, HttpIdentityGateway, HttpSessionGateway
from .infrastructure.realtime import WebSocketRealtimeChannel
from .infrastructure.storage import InMemoryIdentityStore, JsonFileIdentityStore

QUIT_COMMAND = "/quit"
RECONNECT_COMMAND = "/reconnect"


class ConsoleRenderer(IConversationRenderer):
    """Prints conversation turns as plain lines"""

    def __init__(self, out: TextIO = sys.stdout):
        self.out = out

    def render(self, message: Message, is_own: bool) -> None:
        prefix = "> " if is_own else "  "
        print(prefix + message.display_text(is_own), file=self.out, flush=True)

    def show_conversation(self) -> None:
        print("--- chat started (type /quit to leave) ---", file=self.out, flush=True)


class ConsoleNotifier(INotifier):
    def __init__(self, out: TextIO = sys.stdout):
        self.out = out

    def notify(self, text: str, level: NoticeLevel = NoticeLevel.INFO) -> None:
        marker = {NoticeLevel.INFO: "*", NoticeLevel.WARNING: "!", NoticeLevel.ERROR: "!!"}[level]
        print(f"{marker} {text}", file=self.out, flush=True)


async def _read_line(prompt: str = "") -> Optional[str]:
    """Read one line from stdin without blocking the event loop; None on EOF"""
    loop = asyncio.get_running_loop()

    def _blocking_read() -> str:
        if prompt:
            sys.stdout.write(prompt)
            sys.stdout.flush()
        return sys.stdin.readline()

    line = await loop.run_in_executor(None, _blocking_read)
    if line == "":
        return None
    return line.rstrip("\r\n")


async def _register_interactively(
    orchestrator: SessionOrchestrator,
    name: Optional[str],
    email: Optional[str]
) -> bool:
    """Prompt for name/email until registration yields a session; False on EOF"""
    while not orchestrator.session.is_active:
        if name is None:
            name = await _read_line("Name: ")
        if email is None:
            email = await _read_line("Email: ")
        if name is None or email is None:
            return False

        await orchestrator.register(name, email)
        name = email = None
    return True


async def run_chat(
    settings: ChatSettings,
    name: Optional[str] = None,
    email: Optional[str] = None,
    persist: bool = True
) -> int:
    logger = get_logger(__name__)
    if persist and settings.storage.path:
        store: IIdentityStore = JsonFileIdentityStore(settings.storage.path)
    else:
        store = InMemoryIdentityStore()
    context = ChatContext()

    async with ChatServiceClient(settings.api) as client:
        channel = WebSocketRealtimeChannel(settings.realtime, context)
        orchestrator = SessionOrchestrator(
            identity_gateway=HttpIdentityGateway(client, settings.api),
            session_gateway=HttpSessionGateway(client, settings.api),
            channel=channel,
            store=store,
            renderer=ConsoleRenderer(),
            notifier=ConsoleNotifier(),
            context=context,
        )

        try:
            await orchestrator.start()
            if not await _register_interactively(orchestrator, name, email):
                return 1

            while True:
                line = await _read_line()
                if line is None or line.strip() == QUIT_COMMAND:
                    break
                if line.strip() == RECONNECT_COMMAND:
                    await orchestrator.reconnect()
                    continue
                await orchestrator.send(line)
        finally:
            await orchestrator.shutdown()
            logger.info("cli.session_ended", {
                "session_id": context.session_id,
                "http": client.get_statistics(),
                "channel": channel.get_connection_stats()
            })
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="travochat",
        description="Terminal client for the travochat chat service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  travochat                                  # Resume a stored identity or register
  travochat --name Ann --email a@x.com       # Register without prompting
  travochat --config config/travochat.json   # Explicit JSON configuration
        """
    )
    parser.add_argument('--config', help='Path to a JSON configuration file')
    parser.add_argument('--name', help='Display name used if registration is needed')
    parser.add_argument('--email', help='Email used if registration is needed')
    parser.add_argument('--no-persist', action='store_true', help='Keep preferences in memory only')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args(argv)

    try:
        settings = get_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.logging)

    try:
        return asyncio.run(run_chat(settings, args.name, args.email, persist=not args.no_persist))
    except KeyboardInterrupt:
        return 130


if __name__ == '__main__':
    sys.exit(main())
