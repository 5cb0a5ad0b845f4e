from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from .cartridge import CartridgeImage
from .errors import NesStateError
from .logging_config import configure_logging
from .persistence import SnapshotRecord, open_store
from .settings import Settings

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="nesstate", description="Inspect iNES images and their saved console states")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=None, help="YAML settings file merged over the defaults")
    p.add_argument("--data-dir", type=Path, default=None, help="Directory holding the snapshot database")

    sub = p.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("header", "Print the parsed iNES header"),
        ("fingerprint", "Print the content fingerprint"),
        ("list", "List saved snapshots, most recent first"),
        ("delete-all", "Delete every snapshot of the image"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("rom", type=Path, help="Path to an .nes image")
    sub.add_parser("clear", help="Delete every snapshot of every image")
    return p.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.load(args.config)
    if args.data_dir is not None:
        storage = settings.storage.model_copy(update={"directory": args.data_dir})
        settings = settings.model_copy(update={"storage": storage})
    return settings


def describe_header(image: CartridgeImage) -> Dict[str, Any]:
    h = image.header
    return {
        "fingerprint": image.fingerprint,
        "valid_header": h.is_valid,
        "valid_image": image.is_valid,
        "prg_blocks": h.num_prg_blocks,
        "chr_blocks": h.num_chr_blocks,
        "mapper": h.mapper.name,
        "mapper_number": h.mapper_number,
        "mapper_supported": h.mapper.is_supported and h.is_mapper_recognized,
        "mirroring": h.mirroring_mode.name.lower(),
        "trainer": h.has_trainer,
        "battery": h.has_battery,
    }


def describe_snapshot(record: SnapshotRecord) -> Dict[str, Any]:
    return {
        "date": record.date.isoformat() if record.date else None,
        "auto_save": record.is_auto_save,
        "frame": record.ppu_state.frame,
        "cpu_cycles": record.cpu_state.cycles,
    }


def run(args: argparse.Namespace, settings: Settings) -> Any:
    if args.command in ("header", "fingerprint"):
        image = CartridgeImage.load(args.rom)
        if args.command == "fingerprint":
            return {"fingerprint": image.fingerprint}
        return describe_header(image)

    with open_store(settings) as store:
        if args.command == "clear":
            return {"deleted": store.clear()}
        image = CartridgeImage.load(args.rom)
        if args.command == "list":
            return [describe_snapshot(r) for r in store.list(image.fingerprint)]
        return {"deleted": store.delete_all(image.fingerprint)}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = build_settings(args)
    except (ValidationError, yaml.YAMLError, OSError) as exc:
        configure_logging(debug=args.debug)
        logger.error("Invalid settings: %s", exc)
        return 1
    configure_logging(settings.logging, debug=args.debug)
    try:
        data = run(args, settings)
    except (NesStateError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    print(json.dumps(data, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
