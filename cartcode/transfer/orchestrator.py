from __future__ import annotations

import asyncio
import contextlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, TypeVar

from loguru import logger

from cartcode.exceptions import (
    ArtifactWriteError,
    CartcodeError,
    FileNotFoundError as CartcodeFileNotFoundError,
    InvalidIdentifierError,
    InvalidInputError,
    TransferTimeoutError,
)
from cartcode.payload import PayloadCodec, get_payload_codec
from cartcode.settings import Settings
from cartcode.storage import ContentStore, build_locator, build_store, identifier_from_text
from cartcode.transfer.jobs import JobKind, JobStage, TransferJob
from cartcode.visual import ImageFormat, VisualCodec, get_visual_codec

T = TypeVar("T")


@dataclass(frozen=True)
class TransferResult:
    job: TransferJob
    identifier: str
    output_path: Path
    encoded_text: str | None = None


def _read_source(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as exc:
        raise CartcodeFileNotFoundError(f"This file doesn't exist: {path}", {"path": str(path)}) from exc
    except OSError as exc:
        raise InvalidInputError(f"This file can't be read: {path} ({exc.strerror or exc})", {"path": str(path)}) from exc


def _write_artifact(path: Path, data: bytes) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
    except OSError as exc:
        raise ArtifactWriteError(f"Could not write {path} ({exc.strerror or exc})", {"path": str(path)}) from exc


class TransferOrchestrator:
    """Runs the encode (file -> code image) and decode (code image -> file) pipelines.

    One orchestrator serves every variant: the store, the payload codec and the
    visual codec are injected, so barcode/QR and packed/raw transfers share the
    same state machine. Each network-bound stage races the store call against
    a deadline of ``settings.timeout_ms``; any failure is raised to the caller
    as a ``CartcodeError`` and ends the job.
    """

    def __init__(
        self,
        settings: Settings,
        store: ContentStore,
        payload_codec: PayloadCodec,
        visual_codec: VisualCodec,
    ) -> None:
        self.settings = settings
        self.store = store
        self.payload_codec = payload_codec
        self.visual_codec = visual_codec

    @classmethod
    def from_settings(cls, settings: Settings, store: ContentStore | None = None) -> "TransferOrchestrator":
        return cls(
            settings,
            store or build_store(settings.store),
            get_payload_codec(settings.pack_payload),
            get_visual_codec(settings.codec_kind, settings.render, settings.scan),
        )

    async def encode(self, source: Path, destination: Path, title: str) -> TransferResult:
        job = TransferJob(kind=JobKind.ENCODE, source=source, destination=destination)
        logger.debug("[encode] job {} started for {}", job.id, source)
        try:
            logger.info("Loading: {}", source)
            raw = await asyncio.to_thread(_read_source, source)
            payload = self.payload_codec.pack(raw)
            if self.payload_codec.packed:
                logger.info("Compressed {} to zip ({} -> {} bytes)", source.name, len(raw), len(payload))

            job.advance(JobStage.SUBMITTING)
            logger.info("Uploading cartridge to content store")
            identifier = await self._await_result(job, self.store.upload(payload), action="upload")
            if not identifier:
                raise InvalidIdentifierError("The content store returned an empty identifier")
            job.identifier = identifier
            locator = build_locator(self.store.locator_base, identifier)
            logger.success("Successfully uploaded cartridge to: {}", locator)

            job.advance(JobStage.RENDERING)
            text = locator if self.visual_codec.encodes_locator else identifier
            logger.info("Creating {}", self.visual_codec.label)
            image = await asyncio.to_thread(
                self.visual_codec.render,
                text,
                self.settings.render.caption_for(title),
                ImageFormat.from_path(destination),
            )
            await asyncio.to_thread(_write_artifact, destination, image)
            job.advance(JobStage.DONE)
        except CartcodeError as exc:
            job.fail(exc)
            logger.debug("[encode] job {} failed after {} ms: {}", job.id, job.elapsed_ms, job.error)
            raise

        logger.success("{} was created and saved to: {}", self.visual_codec.label.capitalize(), destination)
        logger.debug("[encode] job {} timeline: {}", job.id, job.timeline)
        return TransferResult(job=job, identifier=identifier, output_path=destination, encoded_text=text)

    async def decode(self, source: Path, destination: Path, title: str | None = None) -> TransferResult:
        job = TransferJob(kind=JobKind.DECODE, source=source, destination=destination)
        logger.debug("[decode] job {} started for {} ({})", job.id, source, title or "untitled")
        try:
            job.advance(JobStage.SCANNING)
            logger.info("Starting to decode {}", self.visual_codec.label)
            text = await asyncio.to_thread(self.visual_codec.scan, source)
            identifier = identifier_from_text(self.store.locator_base, text)
            if not identifier:
                raise InvalidIdentifierError(
                    f"The decoded {self.visual_codec.label} does not contain a content identifier",
                    {"text": text},
                )
            job.identifier = identifier
            logger.success("Successfully decoded {}! identifier: {}", self.visual_codec.label, identifier)

            job.advance(JobStage.SUBMITTING)
            logger.info("Downloading cartridge data from content store")
            data = await self._await_result(job, self.store.fetch(identifier), action="download")
            logger.success("Successfully downloaded cartridge data!")

            job.advance(JobStage.RECONSTRUCTING)
            logger.info("Writing data")
            cartridge = self.payload_codec.unpack(data)
            await asyncio.to_thread(_write_artifact, destination, cartridge)
            job.advance(JobStage.DONE)
        except CartcodeError as exc:
            job.fail(exc)
            logger.debug("[decode] job {} failed after {} ms: {}", job.id, job.elapsed_ms, job.error)
            raise

        logger.success("Successfully written cartridge to: {}", destination)
        logger.debug("[decode] job {} timeline: {}", job.id, job.timeline)
        return TransferResult(job=job, identifier=identifier, output_path=destination, encoded_text=text)

    async def _await_result(self, job: TransferJob, operation: Awaitable[T], *, action: str) -> T:
        """Wait for ``operation`` until it finishes or the deadline passes.

        The wait wakes once per poll interval to report progress; it never
        spins. On timeout the pending store call is cancelled.
        """
        job.advance(JobStage.AWAITING_RESULT)
        loop = asyncio.get_running_loop()
        task = asyncio.ensure_future(operation)
        deadline = loop.time() + self.settings.timeout_s
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                done, _ = await asyncio.wait({task}, timeout=min(self.settings.poll_interval_s, remaining))
                if done:
                    return task.result()
                logger.debug("Waiting for {} ({} ms elapsed)", action, job.elapsed_ms)
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        raise TransferTimeoutError(
            "Connection timeout. Check your internet connection or try again later!",
            {"action": action, "timeout_ms": str(self.settings.timeout_ms)},
        )


__all__ = ["TransferOrchestrator", "TransferResult"]
