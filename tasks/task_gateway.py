import argparse
import os
import sys

from rxcord import (
    GatewayConfig,
    GatewayError,
    Identify,
    Intent,
    Opcode,
    Session,
    ShutdownContext,
    register_shutdown_signals,
)


def parse_intents(names: str) -> Intent:
    intents = Intent(0)
    for name in filter(None, (n.strip() for n in names.split(","))):
        try:
            intents |= Intent[name.upper()]
        except KeyError:
            raise argparse.ArgumentTypeError(f"unknown intent {name!r}") from None
    return intents


def build_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("gateway", help="connect to the gateway and print dispatches.")
    parser.add_argument("--token", type=str, default=os.environ.get("RXCORD_TOKEN"))
    parser.add_argument("--intents", type=parse_intents, default=Intent.GUILDS | Intent.GUILD_MESSAGES)
    parser.add_argument("--host", type=str, default=GatewayConfig.host)
    parser.add_argument("--port", type=int, default=GatewayConfig.port)
    parser.add_argument("--no-tls", action="store_true")
    parser.set_defaults(func=task)


def task(parsed_args: argparse.Namespace):
    if not parsed_args.token:
        print("A token is required (--token or RXCORD_TOKEN).", file=sys.stderr)
        sys.exit(2)

    def on_frame(frame):
        if frame.op == Opcode.DISPATCH:
            print(f"[{frame.s}] {frame.t}")

    config = GatewayConfig(
        host=parsed_args.host,
        port=parsed_args.port,
        tls=not parsed_args.no_tls,
    )
    session = Session.connect(
        Identify(token=parsed_args.token, intents=parsed_args.intents),
        handler=on_frame,
        config=config,
    )
    registration = register_shutdown_signals(ShutdownContext([session]))
    try:
        session.start()
    except GatewayError as e:
        print(f"Gateway session ended: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        registration.unregister()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(prog="rxcord")
    build_parser(parser.add_subparsers(dest="command", required=True))
    args = parser.parse_args()
    args.func(args)
