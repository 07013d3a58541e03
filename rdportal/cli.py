"""rdportal command-line interface"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional, Sequence

from rdportal import __version__
from rdportal.common.config import Config, ConfigLoader
from rdportal.common.errors import PortalError
from rdportal.common.logging_setup import logging_setup
from rdportal.common.settings import settings
from rdportal.common.types import (
    Axis,
    DeviceType,
    InputEvent,
    KeyboardKeycode,
    KeyboardKeysym,
    KeyState,
    PointerAxisDiscrete,
    PointerButton,
    PointerMotion,
)
from rdportal.keys import buttonFromName_get, keycodeFromName_get, keysymFromName_get
from rdportal.portal.options import SelectDevicesOptions, SelectedDevices
from rdportal.portal.remote_desktop import RemoteDesktopProxy

logger = logging.getLogger(__name__)


def arguments_parse(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments

    Args:
        argv: Argument list; defaults to sys.argv[1:].

    Returns:
        Parsed CLI arguments.
    """
    parser = argparse.ArgumentParser(
        prog="rdportal",
        description="Remote-control input devices through the XDG RemoteDesktop portal",
    )

    parser.add_argument("--version", action="version", version=f"rdportal {__version__}")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (default: search standard locations)",
    )

    parser.add_argument(
        "--bus",
        type=str,
        choices=["session", "system"],
        default=None,
        help="Message bus the portal lives on (overrides config)",
    )

    parser.add_argument(
        "--devices",
        type=str,
        default=None,
        help="Comma-separated device types to request, e.g. keyboard,pointer (overrides config)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each portal dialog (overrides config)",
    )

    parser.add_argument(
        "--query",
        action="store_true",
        help="Print available device types and interface version, then exit",
    )

    parser.add_argument("--key", type=str, default=None, help="Tap an evdev key, e.g. ENTER")
    parser.add_argument("--keysym", type=str, default=None, help="Tap an X11 keysym, e.g. Return")
    parser.add_argument(
        "--click", type=str, default=None, help="Click a pointer button: left, right, middle"
    )
    parser.add_argument(
        "--move",
        type=float,
        nargs=2,
        metavar=("DX", "DY"),
        default=None,
        help="Move the pointer by a relative amount",
    )
    parser.add_argument(
        "--scroll", type=int, default=None, help="Scroll vertically by discrete steps"
    )

    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging (overrides config)"
    )
    parser.add_argument(
        "--info", action="store_true", help="Enable info logging (overrides config)"
    )
    parser.add_argument(
        "--warning", action="store_true", help="Enable warning logging (overrides config)"
    )
    parser.add_argument(
        "--error", action="store_true", help="Enable error logging (overrides config)"
    )
    parser.add_argument(
        "--critical", action="store_true", help="Enable critical logging (overrides config)"
    )

    return parser.parse_args(argv)


def logLevelOverride_get(args: argparse.Namespace) -> str | None:
    """
    Resolve explicit log level override flags.

    Args:
        args: Parsed CLI args.

    Returns:
        Selected log level or None.
    """
    if args.critical:
        return "CRITICAL"
    if args.error:
        return "ERROR"
    if args.warning:
        return "WARNING"
    if args.info:
        return "INFO"
    if args.debug:
        return "DEBUG"
    return None


def events_build(args: argparse.Namespace) -> list[InputEvent]:
    """
    Translate action flags into the input events to send, in a fixed order:
    key, keysym, move, click, scroll.

    Raises:
        ValueError: If a key, keysym or button name is unknown.
    """
    events: list[InputEvent] = []
    if args.key is not None:
        keycode = keycodeFromName_get(args.key)
        events.append(KeyboardKeycode(keycode, KeyState.PRESSED))
        events.append(KeyboardKeycode(keycode, KeyState.RELEASED))
    if args.keysym is not None:
        keysym = keysymFromName_get(args.keysym)
        events.append(KeyboardKeysym(keysym, KeyState.PRESSED))
        events.append(KeyboardKeysym(keysym, KeyState.RELEASED))
    if args.move is not None:
        dx, dy = args.move
        events.append(PointerMotion(dx, dy))
    if args.click is not None:
        button = buttonFromName_get(args.click)
        events.append(PointerButton(button, KeyState.PRESSED))
        events.append(PointerButton(button, KeyState.RELEASED))
    if args.scroll is not None:
        events.append(PointerAxisDiscrete(Axis.VERTICAL, args.scroll))
    return events


def config_resolve(args: argparse.Namespace) -> Config:
    """Load config and apply command-line overrides."""
    config_path = Path(args.config) if args.config else None
    devices = None
    if args.devices:
        devices = [item.strip() for item in args.devices.split(",") if item.strip()]
    return ConfigLoader.configWithOverrides_load(
        file_path=config_path,
        bus=args.bus,
        timeout=args.timeout,
        devices=devices,
        log_level=logLevelOverride_get(args),
    )


async def session_run(
    proxy: RemoteDesktopProxy,
    devices: DeviceType,
    events: Sequence[InputEvent],
) -> DeviceType:
    """
    Run one full session: create, select devices, start, send events, close.

    Args:
        proxy: Portal proxy.
        devices: Device types to request.
        events: Input events to send once the session is active.

    Returns:
        Granted device types.
    """
    session = await proxy.session_create()
    try:
        request = await proxy.devices_select(session, SelectDevicesOptions(types=devices or None))
        await request.response_receive()

        request = await proxy.start(session)
        selected = await request.response_receive(SelectedDevices)
        logger.info("Granted devices: %s", ", ".join(selected.devices.names_get()) or "none")

        for event in events:
            await proxy.event_notify(session, event)
        return selected.devices
    finally:
        await proxy.session_close(session)


async def portal_run(args: argparse.Namespace, config: Config) -> int:
    """
    Connect to the portal and perform the requested action.

    Returns:
        Process exit code.
    """
    from rdportal.dbus.gio_transport import GioTransport

    events = events_build(args)
    devices = DeviceType.names_parse(config.session.devices)

    transport = GioTransport(bus=config.portal.bus, destination=config.portal.destination)
    await transport.connection_establish()
    try:
        async with RemoteDesktopProxy(transport) as proxy:
            if args.query:
                available = await proxy.availableDeviceTypes_get()
                version = await proxy.version_get()
                print(f"available device types: {', '.join(available.names_get()) or 'none'}")
                print(f"interface version: {version}")
                return 0

            if not events:
                logger.warning("No input action given; starting and closing a session only")
            await session_run(proxy, devices, events)
            return 0
    finally:
        await transport.connection_close()


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Main entry point for the rdportal command"""
    args = arguments_parse(argv)

    try:
        config = config_resolve(args)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    settings.initialize(config)
    try:
        logging_setup(config.logging)
    except (OSError, ValueError) as e:
        print(f"Error configuring logging: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        exit_code = asyncio.run(portal_run(args, config))
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except PortalError as e:
        logger.error("Portal error: %s", e)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
