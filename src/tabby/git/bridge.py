"""Git Smart HTTP bridge — the read (upload-pack) side only.

Requests under a passthrough prefix land here with the repository directory
and the sub-path below the prefix:

- ``GET info/refs?service=git-upload-pack``: reference advertisement
- ``POST git-upload-pack``: pack negotiation, streamed through git
- ``GET HEAD`` (and the other dumb-protocol text files): raw file fetch

Each Git request spawns one ``git upload-pack --stateless-rpc`` process.
Failures are printed and recorded; the client sees an empty or truncated
body, which git detects through its own pack checksums.
"""

from __future__ import annotations

import asyncio
import email.utils
import sys
import time
import zlib
from collections.abc import AsyncIterator
from contextlib import suppress
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from tabby._errors import GitError, GitProcessError, ProtocolDecodeError
from tabby.git.pktline import service_header
from tabby.server.http import (
    NO_CACHE_HEADERS,
    SiteRequest,
    SiteResponse,
    method_not_allowed,
    not_found,
    text_response,
)

if TYPE_CHECKING:
    from tabby.observability.collector import EventCollector

UPLOAD_PACK_SERVICE = "git-upload-pack"
RECEIVE_PACK_SERVICE = "git-receive-pack"
ADVERTISEMENT_CONTENT_TYPE = "application/x-git-upload-pack-advertisement"
RESULT_CONTENT_TYPE = "application/x-git-upload-pack-result"
PLAIN_TEXT = "text/plain"

# Files a dumb-protocol client may fetch directly.
TEXT_FILES = frozenset({
    "HEAD",
    "info/refs",
    "objects/info/alternates",
    "objects/info/http-alternates",
    "objects/info/packs",
})

_READ_METHODS = ("GET", "HEAD")


async def gunzip_stream(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Incrementally decode a gzip-encoded body.

    Raises:
        ProtocolDecodeError: If the data is not valid gzip or is truncated.

    """
    decoder = zlib.decompressobj(wbits=zlib.MAX_WBITS | 16)
    async for chunk in chunks:
        try:
            data = decoder.decompress(chunk)
        except zlib.error as exc:
            msg = f"invalid gzip request body: {exc}"
            raise ProtocolDecodeError(msg) from exc
        if data:
            yield data
    if not decoder.eof:
        msg = "truncated gzip request body"
        raise ProtocolDecodeError(msg)
    tail = decoder.flush()
    if tail:
        yield tail


class GitBridge:
    """Answers Git Smart HTTP requests by piping through ``git upload-pack``.

    Args:
        git_command: The git executable.
        collector: Optional EventCollector for request outcomes.
        chunk_size: Read size for streaming subprocess output.

    """

    __slots__ = ("_chunk_size", "_collector", "_git")

    def __init__(
        self,
        git_command: str = "git",
        *,
        collector: EventCollector | None = None,
        chunk_size: int = 65536,
    ) -> None:
        self._git = git_command
        self._collector = collector
        self._chunk_size = chunk_size

    def _command(self, repository: Path, *, advertise: bool) -> list[str]:
        args = [self._git, "upload-pack", "--stateless-rpc"]
        if advertise:
            args.append("--advertise-refs")
        args.append(str(repository))
        return args

    async def handle(
        self, request: SiteRequest, repository: Path, sub_path: str,
    ) -> SiteResponse:
        """Dispatch a request that falls under a passthrough prefix."""
        if ".." in PurePosixPath(sub_path).parts:
            return not_found()

        if sub_path == "info/refs":
            service = request.query.get("service")
            if service is None:
                if request.method not in _READ_METHODS:
                    return method_not_allowed(*_READ_METHODS)
                return self.serve_file(repository / sub_path)
            if service != UPLOAD_PACK_SERVICE:
                return text_response(403, f"service {service} is not available")
            return await self.advertise_refs(repository, service)

        if sub_path == UPLOAD_PACK_SERVICE:
            if request.method != "POST":
                return method_not_allowed("POST")
            return self.upload_pack(
                repository, request.body, request.header("content-encoding"),
            )

        if sub_path == RECEIVE_PACK_SERVICE:
            return text_response(403, f"service {RECEIVE_PACK_SERVICE} is not available")

        if sub_path in TEXT_FILES:
            if request.method not in _READ_METHODS:
                return method_not_allowed(*_READ_METHODS)
            return self.serve_file(repository / sub_path)

        return not_found()

    # ----- reference advertisement -----

    async def advertise_refs(self, repository: Path, service: str) -> SiteResponse:
        """Run ``upload-pack --advertise-refs`` and frame its output."""
        t0 = time.perf_counter()
        try:
            refs = await self._capture_refs(repository)
        except GitProcessError as exc:
            self._report("advertise", repository, exc, t0)
            return SiteResponse(status=500, content_type=PLAIN_TEXT)

        self._record("advertise", repository, "ok", "", t0, len(refs))
        return SiteResponse(
            status=200,
            content_type=ADVERTISEMENT_CONTENT_TYPE,
            headers=NO_CACHE_HEADERS,
            body=service_header(service) + refs,
        )

    async def _capture_refs(self, repository: Path) -> bytes:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._command(repository, advertise=True),
                cwd=repository,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            msg = f"cannot start {self._git}: {exc}"
            raise GitProcessError(msg) from exc

        try:
            stdout, stderr = await proc.communicate()
        finally:
            if proc.returncode is None:
                with suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
        if proc.returncode != 0:
            detail = stderr.decode("utf-8", "replace").strip()
            msg = f"{self._git} upload-pack exited with {proc.returncode}: {detail}"
            raise GitProcessError(msg)
        return stdout

    # ----- pack negotiation -----

    def upload_pack(
        self,
        repository: Path,
        body: AsyncIterator[bytes],
        content_encoding: str | None = None,
    ) -> SiteResponse:
        """Stream ``upload-pack --stateless-rpc`` output for a negotiation body.

        The subprocess starts when the response stream is first iterated and
        is torn down when the stream finishes or is closed.
        """
        if (content_encoding or "").strip().lower() == "gzip":
            body = gunzip_stream(body)
        return SiteResponse(
            status=200,
            content_type=RESULT_CONTENT_TYPE,
            headers=NO_CACHE_HEADERS,
            stream=self._stream_upload_pack(repository, body),
        )

    async def _stream_upload_pack(
        self, repository: Path, body: AsyncIterator[bytes],
    ) -> AsyncIterator[bytes]:
        t0 = time.perf_counter()
        sent = 0
        proc: asyncio.subprocess.Process | None = None
        feeder: asyncio.Task[None] | None = None
        try:
            try:
                proc = await asyncio.create_subprocess_exec(
                    *self._command(repository, advertise=False),
                    cwd=repository,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.DEVNULL,
                )
            except OSError as exc:
                msg = f"cannot start {self._git}: {exc}"
                raise GitProcessError(msg) from exc

            assert proc.stdin is not None
            assert proc.stdout is not None
            feeder = asyncio.create_task(_feed_stdin(proc.stdin, body))

            while chunk := await proc.stdout.read(self._chunk_size):
                sent += len(chunk)
                yield chunk

            await feeder
            returncode = await proc.wait()
            if returncode != 0:
                msg = f"{self._git} upload-pack exited with {returncode}"
                raise GitProcessError(msg)
        except GitError as exc:
            self._report("upload-pack", repository, exc, t0)
        else:
            self._record("upload-pack", repository, "ok", "", t0, sent)
        finally:
            if feeder is not None and not feeder.done():
                feeder.cancel()
                with suppress(asyncio.CancelledError):
                    await feeder
            if proc is not None and proc.returncode is None:
                with suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()

    # ----- raw files -----

    def serve_file(self, path: Path, content_type: str = PLAIN_TEXT) -> SiteResponse:
        """Serve a repository file with no-cache headers and stat metadata."""
        try:
            stat = path.stat()
            data = path.read_bytes()
        except FileNotFoundError:
            return not_found()
        except OSError as exc:
            print(f"  git file {path}: {exc}", file=sys.stderr)
            return not_found()

        return SiteResponse(
            status=200,
            content_type=content_type,
            headers=(
                *NO_CACHE_HEADERS,
                ("Content-Length", str(stat.st_size)),
                ("Last-Modified", email.utils.formatdate(stat.st_mtime, usegmt=True)),
            ),
            body=data,
        )

    # ----- reporting -----

    def _report(self, service: str, repository: Path, exc: GitError, t0: float) -> None:
        print(f"  git {service} failed for {repository}: {exc}", file=sys.stderr)
        self._record(service, repository, "failed", str(exc), t0, 0)

    def _record(
        self, service: str, repository: Path, outcome: str, detail: str, t0: float, size: int,
    ) -> None:
        if self._collector is None:
            return
        self._collector.record_git(
            service=service,
            repository=str(repository),
            outcome=outcome,
            detail=detail,
            bytes_sent=size,
            duration_ms=(time.perf_counter() - t0) * 1000,
        )


async def _feed_stdin(stdin: asyncio.StreamWriter, body: AsyncIterator[bytes]) -> None:
    """Copy the request body into git's stdin, closing it at the end.

    git may exit before reading everything (e.g. on a bad request); the
    broken pipe is not an error here, the exit status reports it.
    """
    try:
        async for chunk in body:
            stdin.write(chunk)
            await stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        pass
    finally:
        stdin.close()
        with suppress(BrokenPipeError, ConnectionResetError):
            await stdin.wait_closed()
