import sys
import asyncio
import argparse

from .api import GoveeClient
from .config import ConfigError, get_settings
from .controller import Controller


async def _run(args) -> int:
    ctl = Controller(GoveeClient.from_settings(get_settings()))
    try:
        devices = await ctl.refresh()
        if args.cmd == "devices":
            print(ctl.state.status)
            for d in devices:
                print(f"{d.device_id}\t{d.model}\t{d.label}")
            return 0 if ctl.state.status.startswith("Found") else 1

        if args.device:
            try:
                ctl.select(args.device)
            except KeyError:
                print(f"Unknown device {args.device!r}", file=sys.stderr)
                return 2

        if args.cmd == "color":
            ok = await ctl.set_color(args.hex)
        elif args.cmd == "brightness":
            ok = await ctl.set_brightness(args.value)
        else:
            ok = await ctl.set_power(args.cmd == "on")
        print(ctl.state.status)
        return 0 if ok else 1
    finally:
        await ctl.client.close()


def main(argv=None):
    p = argparse.ArgumentParser(prog="govee-web")
    sub = p.add_subparsers(dest="cmd", required=True)

    serve = sub.add_parser("serve", help="Run the web controller")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("devices", help="List devices on the account")

    for name, help_ in (("color", "Set color"), ("brightness", "Set brightness"),
                        ("on", "Turn on"), ("off", "Turn off")):
        sp = sub.add_parser(name, help=help_)
        sp.add_argument("--device", default=None, help="Device id (first device if omitted)")
        if name == "color":
            sp.add_argument("hex", help="Color as #rrggbb")
        elif name == "brightness":
            sp.add_argument("value", help="0..100")

    args = p.parse_args(argv)

    if args.cmd == "serve":
        import uvicorn
        uvicorn.run("govee_web.webapp:app", host=args.host, port=args.port)
        return 0

    try:
        return asyncio.run(_run(args))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

if __name__ == "__main__":
    sys.exit(main())
