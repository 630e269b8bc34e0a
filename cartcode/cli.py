"""Command line interface for encoding cartridges into visual codes and back."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from loguru import logger

from cartcode import __version__
from cartcode.exceptions import (
    CartcodeError,
    FileNotFoundError as CartcodeFileNotFoundError,
    InvalidInputError,
)
from cartcode.logging_config import level_for, setup_logging
from cartcode.settings import CodecKind, Settings, get_settings
from cartcode.transfer import JobKind, TransferOrchestrator, TransferResult

CARTRIDGE_EXTENSIONS = {".tic"}
IMAGE_EXTENSIONS = {".png", ".jpg"}

ERROR_HINTS = {
    "InvalidInput": "Check the title and the file paths you entered.",
    "FileNotFound": "Check that the input file exists.",
    "StoreUnavailable": "Check your internet connection and the IPFS API settings.",
    "InvalidIdentifier": "The content store gave no usable identifier; try again later.",
    "Timeout": "Raise timeout_ms or try again later.",
    "DecodeFailed": "Use a sharper image that shows the whole code.",
    "UnsupportedSymbolData": "Switch to the QR codec with --codec qr.",
    "CorruptPayload": "Decode with the same --pack setting that was used to encode.",
    "WriteFailed": "Check that the output path is a writable file location.",
    "Configuration": "Fix the configuration file or the command line options.",
}


@dataclass(frozen=True)
class JobRequest:
    kind: JobKind
    source: Path
    destination: Path
    title: str | None = None


def _check_title(title: str | None, *, required: bool) -> str | None:
    value = (title or "").strip()
    if not value:
        if required:
            raise InvalidInputError("The game title can't be empty!")
        return None
    return value


def _check_path(value: str | Path | None, extensions: set[str], *, must_exist: bool) -> Path:
    text = str(value or "").strip()
    if not text:
        raise InvalidInputError("The file path can't be empty!")
    path = Path(text)
    if path.suffix.lower() not in extensions:
        allowed = " or ".join(sorted(extensions))
        raise InvalidInputError(f"This filetype is unrecognized, use {allowed} files!", {"path": text})
    if must_exist and not path.is_file():
        raise CartcodeFileNotFoundError("This file doesn't exist!", {"path": text})
    return path


def encode_request(source: str | Path | None, destination: str | Path | None, title: str | None) -> JobRequest:
    checked_title = _check_title(title, required=True)
    src = _check_path(source, CARTRIDGE_EXTENSIONS, must_exist=True)
    if destination is None or not str(destination).strip():
        destination = Path(f"{checked_title.lower()}-cartridge.png")
    dest = _check_path(destination, IMAGE_EXTENSIONS, must_exist=False)
    return JobRequest(JobKind.ENCODE, src, dest, checked_title)


def decode_request(source: str | Path | None, destination: str | Path | None, title: str | None) -> JobRequest:
    checked_title = _check_title(title, required=False)
    src = _check_path(source, IMAGE_EXTENSIONS, must_exist=True)
    if destination is None or not str(destination).strip():
        stem = checked_title.lower() if checked_title else src.stem
        destination = src.with_name(f"{stem}.tic")
    dest = _check_path(destination, CARTRIDGE_EXTENSIONS, must_exist=False)
    return JobRequest(JobKind.DECODE, src, dest, checked_title)


def prompt_request(ask: Callable[[str], str] = input) -> JobRequest:
    """Collect one job interactively; repeats the first question until it gets e or d."""
    try:
        while True:
            choice = ask("Do you want to encode a .tic cartridge or decode a code image? (e / d) >> ").strip().lower()
            if choice == "e":
                logger.info("You selected encode")
                title = ask("What is the title of the game you want to encode? >> ")
                source = ask("What is the path to the .tic game cartridge you want to encode? >> ")
                destination = ask("Where do you want to export the code image to? (.png or .jpg) >> ")
                return encode_request(source, destination, title)
            if choice == "d":
                logger.info("You selected decode")
                title = ask("What is the title of the game you want to decode? >> ")
                source = ask("What is the path to the code image you want to decode? (.png or .jpg) >> ")
                destination = ask("What is the path you want to export the .tic cartridge to? >> ")
                return decode_request(source, destination, title)
    except EOFError as exc:
        raise InvalidInputError("No input received") from exc


def hint_for(exc: CartcodeError) -> str | None:
    return ERROR_HINTS.get(exc.kind)


def _report(exc: CartcodeError) -> None:
    logger.error("{}: {}", exc.kind, exc.message)
    hint = hint_for(exc)
    if hint:
        logger.info("Hint: {}", hint)
    if exc.details:
        logger.debug("details: {}", exc.details)

def build_orchestrator(settings: Settings) -> TransferOrchestrator:
    return TransferOrchestrator.from_settings(settings)


async def run_request(orchestrator: TransferOrchestrator, request: JobRequest) -> TransferResult:
    if request.kind is JobKind.ENCODE:
        return await orchestrator.encode(request.source, request.destination, request.title or "")
    return await orchestrator.decode(request.source, request.destination, request.title)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cartcode",
        description="Store a TIC-80 cartridge on IPFS and print its address as a barcode or QR code, or reverse it.",
    )
    parser.add_argument("--config", type=Path, help="YAML configuration file (default: config/default.yaml)")
    parser.add_argument("--debug", action="store_true", help="Enable verbose diagnostic logging")
    parser.add_argument("--timeout-ms", type=int, help="Maximum wait for a network step in milliseconds")
    parser.add_argument("--codec", choices=[kind.value for kind in CodecKind], help="Visual code to use")
    parser.add_argument(
        "--pack",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Zip the cartridge before upload (and unzip after download)",
    )
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command")
    enc = sub.add_parser("encode", help="Upload a .tic cartridge and render its code image")
    enc.add_argument("source", help="Path to the .tic cartridge")
    enc.add_argument("destination", nargs="?", help="Image to write (.png or .jpg)")
    enc.add_argument("-t", "--title", required=True, help="Game title shown under the code")

    dec = sub.add_parser("decode", help="Scan a code image and download its cartridge")
    dec.add_argument("source", help="Image to scan (.png or .jpg)")
    dec.add_argument("destination", nargs="?", help="Cartridge to write (.tic)")
    dec.add_argument("-t", "--title", help="Game title, used for the default output name")
    return parser


def main(argv: list[str] | None = None, *, ask: Callable[[str], str] = input) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings(str(args.config) if args.config else None).with_overrides(
            debug_mode=True if args.debug else None,
            timeout_ms=args.timeout_ms,
            codec_kind=args.codec,
            pack_payload=args.pack,
        )
    except CartcodeError as exc:
        setup_logging(json_format=args.json_logs)
        _report(exc)
        return 1

    setup_logging(level=level_for(settings.debug_mode), json_format=args.json_logs, log_file=args.log_file)
    logger.debug("cartcode {} settings: {}", __version__, settings.model_dump(mode="json"))

    try:
        if args.command == "encode":
            request = encode_request(args.source, args.destination, args.title)
        elif args.command == "decode":
            request = decode_request(args.source, args.destination, args.title)
        else:
            request = prompt_request(ask)
        orchestrator = build_orchestrator(settings)
        asyncio.run(run_request(orchestrator, request))
    except CartcodeError as exc:
        _report(exc)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 1

    logger.success("Finished! ʕ•ᴥ•ʔ")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
