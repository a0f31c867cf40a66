"""
Audio output for radio listeners.

MpvAudioOutput drives mpv over its JSON IPC socket. The reconciler only
depends on the AudioOutput protocol, so any player exposing the same
controls can stand in.
"""

import json
import os
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Optional, Protocol

from loguru import logger


class AudioOutput(Protocol):
    """Controls for a single audio stream."""

    source: Optional[str]

    def load(self, url: str) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    @property
    def paused(self) -> bool: ...

    @property
    def position(self) -> float: ...

    def seek(self, seconds: float) -> None: ...

    def set_volume(self, volume: float) -> None: ...

    def close(self) -> None: ...


class MpvUnavailableError(RuntimeError):
    """mpv could not be started or its IPC socket never came up."""


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def _send_ipc(socket_path: str, command: list[Any]) -> Optional[dict[str, Any]]:
    """Send one JSON IPC command to mpv and return its parsed reply."""
    if not os.path.exists(socket_path):
        return None

    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(2.0)
            sock.connect(socket_path)
            sock.sendall((json.dumps({"command": command}) + "\n").encode("utf-8"))
            response = sock.recv(4096).decode("utf-8").strip()
    except OSError as e:
        logger.debug(f"mpv IPC {command[0]} failed: {e}")
        return None

    # mpv may interleave event lines; the reply is the line carrying "error"
    for line in response.splitlines():
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if "error" in data:
            return data
    return None


class MpvAudioOutput:
    """AudioOutput backed by an mpv subprocess."""

    def __init__(self, socket_path: Optional[str] = None, volume: float = 0.7) -> None:
        if socket_path is None:
            socket_path = str(Path(tempfile.gettempdir()) / f"grouptherapy-mpv-{os.getpid()}")
        self.socket_path = socket_path
        self.source: Optional[str] = None
        self._initial_volume = volume
        self._process: Optional[subprocess.Popen] = None

    def start(self, timeout: float = 5.0) -> None:
        """Start mpv idle with JSON IPC enabled.

        Raises:
            MpvUnavailableError: If mpv fails to start or its socket never appears
        """
        logger.info(f"Starting MPV player with socket: {self.socket_path}")

        if os.path.exists(self.socket_path):
            os.unlink(self.socket_path)

        cmd = [
            "mpv",
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            f"--input-ipc-server={self.socket_path}",
            f"--volume={round(self._initial_volume * 100)}",
            "--pause=yes",
            "--load-scripts=no",
        ]
        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            raise MpvUnavailableError(f"Failed to start MPV: {e}") from e

        start_time = time.time()
        while not os.path.exists(self.socket_path):
            if time.time() - start_time > timeout:
                self._process.kill()
                raise MpvUnavailableError(f"MPV socket creation timeout after {timeout}s")
            time.sleep(0.1)

        logger.info("MPV started successfully")

    def _command(self, *command: Any) -> bool:
        reply = _send_ipc(self.socket_path, list(command))
        return reply is not None and reply.get("error") == "success"

    def _get_property(self, name: str) -> Any:
        reply = _send_ipc(self.socket_path, ["get_property", name])
        if reply and reply.get("error") == "success":
            return reply.get("data")
        return None

    def load(self, url: str) -> None:
        if self._command("loadfile", url, "replace"):
            self.source = url
            logger.info(f"Loaded stream: {url}")
        else:
            logger.warning(f"MPV failed to load {url}")

    def play(self) -> None:
        self._command("set_property", "pause", False)

    def pause(self) -> None:
        self._command("set_property", "pause", True)

    @property
    def paused(self) -> bool:
        value = self._get_property("pause")
        return True if value is None else bool(value)

    @property
    def position(self) -> float:
        value = self._get_property("time-pos")
        return float(value) if value is not None else 0.0

    def seek(self, seconds: float) -> None:
        self._command("seek", seconds, "absolute")

    def set_volume(self, volume: float) -> None:
        self._command("set_property", "volume", round(volume * 100))

    def close(self) -> None:
        """Stop MPV process and cleanup."""
        if self._process:
            try:
                self._process.kill()
                self._process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired):
                pass  # Process already terminated or couldn't be killed
            self._process = None

        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass
