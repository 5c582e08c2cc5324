"""
Терминальный клиент: python -m gridsync [play|serve].
Только показывает снимок состояния и передаёт ввод командами в машину состояний.
"""
import argparse
import asyncio
import logging
import sys
import threading

from .board import OutcomeKind
from .config import get_config
from .session import Phase, Snapshot


HELP = "Enter a cell 1-9, 'r' to play again, 'q' to quit."


def render(snap: Snapshot) -> str:
    """Текстовое поле и строка статуса."""
    if snap.phase in (Phase.IDLE, Phase.SEARCHING):
        return "Searching for an opponent..." if snap.phase is Phase.SEARCHING else "Idle."
    if snap.phase is Phase.MATCHED:
        return "Opponent found, waiting for the game to start..."

    cells = [c.value if c else str(i + 1) for i, c in enumerate(snap.board)]
    rows = [" | ".join(cells[r * 3:r * 3 + 3]) for r in range(3)]
    lines = [f"You are {snap.local_symbol.value}", "", rows[0], "--+---+--", rows[1], "--+---+--", rows[2], ""]

    outcome = snap.outcome
    if outcome.kind is OutcomeKind.WON:
        lines.append(f"{outcome.winner.value} wins! Press 'r' to play again.")
    elif outcome.kind is OutcomeKind.DRAW:
        lines.append("It's a draw! Press 'r' to play again.")
    elif snap.opponent_left:
        lines.append("Opponent left. Press 'r' to find a new game.")
    else:
        lines.append("Your turn!" if snap.is_local_turn else "Waiting for opponent...")
    return "\n".join(lines)


def parse_command(line: str) -> tuple[str, int | None]:
    """('move', индекс 0-8) | ('reset', None) | ('quit', None) | ('unknown', None)."""
    text = line.strip().lower()
    if text in ("q", "quit", "exit"):
        return "quit", None
    if text in ("r", "reset", "again"):
        return "reset", None
    if text.isdigit() and 1 <= int(text) <= 9:
        return "move", int(text) - 1
    return "unknown", None


def _start_stdin_reader(lines: asyncio.Queue) -> None:
    """Читает stdin в потоке-демоне, чтобы он не держал выход из asyncio.run."""
    loop = asyncio.get_running_loop()

    def pump() -> None:
        try:
            for line in sys.stdin:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, "")
        except RuntimeError:
            # цикл уже закрыт
            return

    threading.Thread(target=pump, name="gridsync-stdin", daemon=True).start()


async def _read_commands(machine, lines: asyncio.Queue) -> None:
    while True:
        line = await lines.get()
        if not line:
            return
        command, index = parse_command(line)
        if command == "quit":
            return
        if command == "reset":
            machine.reset()
        elif command == "move":
            if not machine.submit_local_move(index):
                print("Move ignored.")
        else:
            print(HELP)


async def play(url: str) -> None:
    from .client import WebSocketRelay
    from .machine import GameStateMachine

    relay = WebSocketRelay(url)
    await relay.connect()
    machine = GameStateMachine(relay)
    machine.on_change(lambda snap: print("\n" + render(snap)))
    print(HELP)
    machine.request_match()

    lines: asyncio.Queue = asyncio.Queue()
    _start_stdin_reader(lines)
    reader = asyncio.create_task(_read_commands(machine, lines))
    receiver = asyncio.create_task(relay.run())
    try:
        await asyncio.wait({reader, receiver}, return_when=asyncio.FIRST_COMPLETED)
        if receiver.done():
            print("Connection to relay lost.")
    finally:
        machine.close()
        await asyncio.sleep(0)
        reader.cancel()
        receiver.cancel()
        await relay.close()


def serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("gridsync.main:app", host=host, port=port)


def main(argv: list[str] | None = None) -> None:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="gridsync",
        description="Two-player tic-tac-toe over a shared relay",
    )
    sub = parser.add_subparsers(dest="command")

    play_parser = sub.add_parser("play", help="Connect to a relay and play (default)")
    play_parser.add_argument("--url", default=config.relay_url, help="Relay WebSocket URL")

    serve_parser = sub.add_parser("serve", help="Run the relay server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=config.log_level if config.debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "serve":
        serve(args.host, args.port)
        return
    url = getattr(args, "url", config.relay_url)
    try:
        asyncio.run(play(url))
    except (OSError, ConnectionError) as e:
        print(f"Could not reach relay at {url}: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass
