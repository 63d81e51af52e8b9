"""OTG Control application entry point.

Loads settings from the environment (and a ``.env`` file), builds the
engine with its collaborators and runs either the desktop window or a
headless loop that echoes the log to stderr.

Subcommands edit the stored setup without starting the engine: list and
rename devices, calibrate tap targets, and author keyword triggers.
"""

import argparse
import sys
from typing import Optional

from dotenv import load_dotenv

from otgcontrol import __version__
from otgcontrol.core.adapters import (
    ImouseClient,
    JsonStore,
    VisionClient,
    create_trigger,
    refresh_devices,
)
from otgcontrol.core.config import AppConfig
from otgcontrol.core.engine import AutomationEngine
from otgcontrol.core.logging import LogEntry, get_logger
from otgcontrol.core.model import (
    ActionType,
    NormalizedCoords,
    OperationResult,
    Platform,
)


def build_store(config: AppConfig) -> JsonStore:
    return JsonStore(config.data_dir, default_config=config.default_automation())


def build_engine(
    config: AppConfig,
) -> tuple[AutomationEngine, JsonStore, ImouseClient]:
    """Create the engine and the collaborators it drives.

    Returns:
        Tuple of (engine, store, actuation client)
    """
    store = build_store(config)
    imouse = ImouseClient(config.imouse_url, timeout=config.imouse_timeout)
    vision = VisionClient(
        config.openai_api_key,
        model=config.openai_model,
        base_url=config.openai_base_url,
    )
    engine = AutomationEngine(store, imouse, vision, app_config=config)
    return engine, store, imouse


# Setup commands


def _report(result: OperationResult, message: str) -> int:
    if not result:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    print(message)
    return 0


def _platform(args: argparse.Namespace, store: JsonStore) -> Platform:
    """Platform named on the command line, else the stored one."""
    if args.platform:
        return Platform(args.platform)
    return store.load_config().platform


def cmd_devices(args: argparse.Namespace, store: JsonStore, config: AppConfig) -> int:
    """List stored devices with their calibrated points."""
    if args.refresh:
        imouse = ImouseClient(config.imouse_url, timeout=config.imouse_timeout)
        result = refresh_devices(imouse, store)
        if not result:
            print(f"Error: {result.error}", file=sys.stderr)
            return 1

    platform = _platform(args, store)
    devices = store.load_devices()
    if not devices:
        print("No devices stored; run with --refresh to pull them from iMouseXP")
        return 0

    for device in devices:
        width, height = device.effective_size()
        points = sorted(device.coords_for(platform).to_dict())
        calibrated = ", ".join(points) if points else "not calibrated"
        print(
            f"{device.id}  {device.label}  {width}x{height}  "
            f"{platform.value}: {calibrated}"
        )
    return 0


def cmd_label(args: argparse.Namespace, store: JsonStore, config: AppConfig) -> int:
    result = store.update_device_label(args.device, args.label)
    return _report(result, f"Renamed {args.device} to {args.label}")


def cmd_forget(args: argparse.Namespace, store: JsonStore, config: AppConfig) -> int:
    result = store.remove_device(args.device)
    return _report(result, f"Removed {args.device}")


def cmd_calibrate(args: argparse.Namespace, store: JsonStore, config: AppConfig) -> int:
    """Set or clear one tap target.

    Positions are normalized (0..1) unless ``--pixels`` is given, in
    which case they are pixels on the device's effective screen.
    """
    platform = _platform(args, store)
    if args.clear:
        result = store.update_device_coords(args.device, platform, args.point, None)
        return _report(result, f"Cleared {platform.value} {args.point} on {args.device}")

    if args.x is None or args.y is None:
        print("Error: X and Y are required unless --clear is given", file=sys.stderr)
        return 2

    if args.pixels:
        result = store.set_coords_from_pixels(
            args.device, platform, args.point, args.x, args.y
        )
    else:
        result = store.update_device_coords(
            args.device, platform, args.point, NormalizedCoords(args.x, args.y)
        )
    return _report(result, f"Calibrated {platform.value} {args.point} on {args.device}")


def cmd_triggers(args: argparse.Namespace, store: JsonStore, config: AppConfig) -> int:
    triggers = store.get_triggers()
    if not triggers:
        print("No triggers configured")
        return 0

    for trigger in triggers:
        scope = ",".join(trigger.device_ids) if trigger.device_ids else "all devices"
        print(
            f"{trigger.id}  {trigger.action_name}  p={trigger.weight:g}  "
            f"[{', '.join(trigger.keywords)}]  {scope}"
        )
    return 0


def cmd_add_trigger(args: argparse.Namespace, store: JsonStore, config: AppConfig) -> int:
    try:
        trigger = create_trigger(
            ActionType(args.action),
            args.keywords,
            probability=args.probability,
            device_ids=args.device,
            comment_templates=args.comment,
            comment_language=args.language,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return _report(store.upsert_trigger(trigger), f"Added {trigger.id}")


def cmd_remove_trigger(args: argparse.Namespace, store: JsonStore, config: AppConfig) -> int:
    result = store.remove_trigger(args.trigger_id)
    return _report(result, f"Removed {args.trigger_id}")


def _add_platform_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        default=None,
        help="platform whose points are used (default: the saved one)",
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="otgcontrol",
        description="Drive remote touch devices through a short-video feed.",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="start the saved automation without a window; Ctrl+C stops it",
    )
    parser.add_argument(
        "--refresh-devices",
        action="store_true",
        help="pull the device list from the iMouseXP server first",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="path of the .env file to load (default: search from cwd)",
    )
    parser.add_argument("--version", action="version", version=__version__)

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    devices = commands.add_parser("devices", help="list stored devices")
    devices.add_argument(
        "--refresh", action="store_true", help="pull the list from iMouseXP first"
    )
    _add_platform_option(devices)
    devices.set_defaults(func=cmd_devices)

    label = commands.add_parser("label", help="rename a device")
    label.add_argument("device")
    label.add_argument("label")
    label.set_defaults(func=cmd_label)

    forget = commands.add_parser("forget", help="remove a stored device")
    forget.add_argument("device")
    forget.set_defaults(func=cmd_forget)

    calibrate = commands.add_parser("calibrate", help="set a tap target")
    calibrate.add_argument("device")
    calibrate.add_argument("point", help="point name, e.g. like or comment_input_field")
    calibrate.add_argument("x", type=float, nargs="?")
    calibrate.add_argument("y", type=float, nargs="?")
    calibrate.add_argument(
        "--pixels", action="store_true", help="X and Y are screen pixels"
    )
    calibrate.add_argument("--clear", action="store_true", help="forget the point")
    _add_platform_option(calibrate)
    calibrate.set_defaults(func=cmd_calibrate)

    triggers = commands.add_parser("triggers", help="list keyword triggers")
    triggers.set_defaults(func=cmd_triggers)

    add_trigger = commands.add_parser("add-trigger", help="add a keyword trigger")
    add_trigger.add_argument("action", choices=[a.value for a in ActionType])
    add_trigger.add_argument("keywords", help="comma-separated keywords")
    add_trigger.add_argument("--probability", type=float, default=None)
    add_trigger.add_argument(
        "--device", action="append", default=[], help="limit to a device (repeatable)"
    )
    add_trigger.add_argument(
        "--comment", action="append", default=[], help="comment template (repeatable)"
    )
    add_trigger.add_argument("--language", default=None, help="comment language hint")
    add_trigger.set_defaults(func=cmd_add_trigger)

    remove_trigger = commands.add_parser("remove-trigger", help="delete a trigger")
    remove_trigger.add_argument("trigger_id")
    remove_trigger.set_defaults(func=cmd_remove_trigger)

    return parser.parse_args(argv)


def _echo(entry: LogEntry) -> None:
    print(entry.format(), file=sys.stderr, flush=True)

def run_headless(engine: AutomationEngine) -> int:
    """Run the saved automation until interrupted.

    Returns:
        Exit code (0 for a clean stop, 1 if the engine could not start)
    """
    logger = get_logger()
    result = engine.start()
    if not result:
        logger.error(f"Start failed: {result.error}")
        return 1

    try:
        # The loop thread ends once the engine is back to idle
        while not engine.join(timeout=0.5):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping...")
        engine.stop()
        engine.join()
    return 0


def run_gui(engine: AutomationEngine, store: JsonStore, imouse: ImouseClient) -> int:
    """Run the desktop control panel."""
    from PySide6.QtWidgets import QApplication

    from otgcontrol.controller import ApplicationController
    from otgcontrol.ui import MainWindow

    app = QApplication(sys.argv)
    app.setApplicationName("OTG Control")
    app.setApplicationVersion(__version__)
    app.setOrganizationName("OTG Control")

    window = MainWindow()
    controller = ApplicationController(window, engine, store, imouse)
    app.aboutToQuit.connect(controller.shutdown)

    window.show()
    return app.exec()


def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    args = parse_args(argv)
    load_dotenv(args.env_file)

    config = AppConfig.from_env()
    logger = get_logger()

    if args.command:
        logger.buffer.add_listener(_echo)
        try:
            return args.func(args, build_store(config), config)
        finally:
            logger.buffer.remove_listener(_echo)

    engine, store, imouse = build_engine(config)
    if args.headless:
        logger.buffer.add_listener(_echo)

    if args.refresh_devices:
        result = refresh_devices(imouse, store)
        if result:
            logger.info(f"Found {len(result.data)} device(s)")
        else:
            logger.error(f"Device refresh failed: {result.error}")

    if args.headless:
        return run_headless(engine)
    return run_gui(engine, store, imouse)


if __name__ == "__main__":
    sys.exit(main())
