import argparse
import asyncio
import signal
import sys

from .core.cancellation import CancellationToken
from .exceptions import SniffLoaderError
from .loader import SniffLoader
from .resolver import ConsoleDecisionProvider, FixedDecisionProvider, OPEN_AS_PARSED, OPEN_AS_RAW


def _print_progress(value: float) -> None:
    if value < 0:
        print("working...", file=sys.stderr)
    else:
        print(f"progress {value:.0%}", file=sys.stderr)


async def _run(args: argparse.Namespace, token: CancellationToken) -> int:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except NotImplementedError:  # pragma: no cover - Windows event loops
        pass

    if args.unknown_as == "parsed":
        provider = FixedDecisionProvider(OPEN_AS_PARSED)
    elif args.unknown_as == "raw":
        provider = FixedDecisionProvider(OPEN_AS_RAW)
    else:
        provider = ConsoleDecisionProvider()

    loader = SniffLoader(decision_provider=provider)
    packets = await loader.load_sniff(
        args.sniff,
        protocol_version=args.protocol_version,
        token=token,
        progress=_print_progress,
    )
    if packets is None:
        print("Cancelled")
        return 130
    print(f"Loaded {len(packets)} packets from {packets.source}")
    for packet in packets[: args.list]:
        print(
            f"{packet.number:>8} {packet.timestamp:>16.3f} {packet.direction.name:<16} "
            f"{packet.opcode_name or packet.opcode} ({len(packet.payload)} bytes)"
        )
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Load a sniff, parsing it if needed")
    parser.add_argument("sniff", help="raw capture (.pkt/.bin) or parsed sniff (.dat)")
    parser.add_argument("--protocol-version", type=int, default=None, help="override client build")
    parser.add_argument(
        "--unknown-as",
        choices=("parsed", "raw"),
        default=None,
        help="how to open files with an unrecognised extension instead of asking",
    )
    parser.add_argument("--list", type=int, default=0, metavar="N", help="print the first N packets")
    args = parser.parse_args(argv)

    token = CancellationToken()
    try:
        return asyncio.run(_run(args, token))
    except SniffLoaderError as exc:
        print(f"error: {exc}", file=sys.stderr)
        if exc.suggestion:
            print(exc.suggestion, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        token.cancel()
        print("Cancelled")
        return 130


if __name__ == "__main__":
    sys.exit(main())
