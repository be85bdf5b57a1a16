"""SSH execution on device-local shells.

Provides the remote exec channel used to probe and configure devices,
plus a progress-reporting wrapper for long-running commands.
"""

import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, TextIO

import paramiko

from fleetjoin.config import defaults
from fleetjoin.config.schemas import SSHConfig
from fleetjoin.errors import RemoteExecError
from fleetjoin.telemetry.logger import get_logger
from fleetjoin.utils.async_utils import run_in_executor
from fleetjoin.utils.ux import Spinner

logger = get_logger(__name__)

OutputSink = Callable[[str], None]

_CHUNK_SIZE = 4096


@dataclass
class CommandResult:
    """Result of a remote command execution.

    Attributes:
        address: Device the command ran on
        command: Command that was executed
        exit_code: Command exit code (-1 when the transport failed)
        stdout: Standard output
        stderr: Standard error
        duration_ms: Execution duration in milliseconds
        success: Whether command succeeded (exit_code == 0)
        error: Error message if execution failed
    """

    address: str
    command: str
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: float
    success: bool
    error: Optional[str] = None


@dataclass
class SSHCredentials:
    """SSH credentials for authentication.

    Development device images accept ``root`` without a password, so all
    fields are optional.
    """

    username: str = defaults.DEFAULT_SSH_USER
    password: Optional[str] = None
    private_key_path: Optional[Path] = None
    private_key_passphrase: Optional[str] = None

    @classmethod
    def from_config(cls, config: SSHConfig) -> "SSHCredentials":
        """Build credentials from the SSH settings."""
        return cls(
            username=config.username,
            private_key_path=config.private_key_path,
        )


class SSHConnection:
    """Manages an SSH connection to a device.

    Example:
        conn = SSHConnection("192.168.1.50", credentials)
        conn.connect()
        result = conn.execute("cat /etc/os-release")
        conn.close()
    """

    def __init__(
        self,
        address: str,
        credentials: SSHCredentials,
        port: int = defaults.DEFAULT_SSH_PORT,
        timeout: float = defaults.DEFAULT_SSH_TIMEOUT,
    ) -> None:
        self.address = address
        self.credentials = credentials
        self.port = port
        self.timeout = timeout
        self._client: Optional[paramiko.SSHClient] = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        """Check if connection is active."""
        if not self._client:
            return False
        transport = self._client.get_transport()
        return transport is not None and transport.is_active()

    def connect(self) -> None:
        """Establish the SSH connection.

        Tries the configured key, then password, then agent/default keys.
        When the device offers no method that works, falls back to the
        ``none`` authentication method used by development images.

        Raises:
            RemoteExecError: If the connection cannot be established
        """
        with self._lock:
            if self.is_connected:
                return

            # Device host keys change on every reflash
            client = paramiko.SSHClient()
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

            connect_kwargs: dict[str, Any] = {
                "hostname": self.address,
                "port": self.port,
                "username": self.credentials.username,
                "timeout": self.timeout,
                "allow_agent": True,
                "look_for_keys": True,
            }
            # Key-based auth first, then password, then agent/default keys
            if self.credentials.private_key_path:
                key_path = Path(self.credentials.private_key_path).expanduser()
                if key_path.exists():
                    connect_kwargs["key_filename"] = str(key_path)
                    connect_kwargs["passphrase"] = self.credentials.private_key_passphrase
            if self.credentials.password:
                connect_kwargs["password"] = self.credentials.password

            try:
                try:
                    client.connect(**connect_kwargs)
                except paramiko.SSHException:
                    # Development images accept "none" auth for root
                    transport = client.get_transport()
                    if transport is None or not transport.is_active():
                        raise
                    transport.auth_none(self.credentials.username)
                    logger.debug("SSH connected via none auth", address=self.address)
            except (paramiko.SSHException, OSError) as e:
                client.close()
                logger.error("SSH connection failed", address=self.address, error=str(e))
                raise RemoteExecError(
                    self.address, "", f"Failed to connect on port {self.port}: {e}"
                ) from e

            self._client = client
            logger.debug("SSH connected", address=self.address, port=self.port)

    def execute(
        self,
        command: str,
        output_sink: Optional[OutputSink] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Execute a command on the device.

        Args:
            command: Command to execute
            output_sink: Receives decoded output chunks as they arrive.
                Standard error is merged into standard output when set.
            timeout: Channel timeout in seconds, None for no timeout

        Returns:
            CommandResult with output and status
        """
        if not self.is_connected:
            self.connect()

        start_time = time.perf_counter()

        try:
            _, stdout, stderr = self._client.exec_command(command, timeout=timeout)
            channel = stdout.channel

            # Read output
            if output_sink is None:
                stdout_data = stdout.read().decode("utf-8", errors="replace")
            else:
                channel.set_combine_stderr(True)
                # Stream progress while the command runs
                chunks: list[str] = []
                while True:
                    data = channel.recv(_CHUNK_SIZE)
                    if not data:
                        break
                    text = data.decode("utf-8", errors="replace")
                    chunks.append(text)
                    output_sink(text)
                stdout_data = "".join(chunks)

            stderr_data = stderr.read().decode("utf-8", errors="replace")
            exit_code = channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "SSH command failed",
                address=self.address,
                command=command[:50],
                error=str(e),
            )
            return CommandResult(
                address=self.address,
                command=command,
                exit_code=-1,
                stdout="",
                stderr="",
                duration_ms=duration_ms,
                success=False,
                error=str(e),
            )

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "SSH command executed",
            address=self.address,
            command=command[:50],
            exit_code=exit_code,
            duration_ms=duration_ms,
        )

        return CommandResult(
            address=self.address,
            command=command,
            exit_code=exit_code,
            stdout=stdout_data,
            stderr=stderr_data,
            duration_ms=duration_ms,
            success=exit_code == 0,
            error=None if exit_code == 0 else f"Command exited with code {exit_code}",
        )

    def close(self) -> None:
        """Close the SSH connection."""
        with self._lock:
            if self._client:
                self._client.close()
                self._client = None


class RemoteExecClient:
    """Runs commands on devices over SSH.

    Connections are opened on first use per address and kept until
    close() is called.

    Example:
        client = RemoteExecClient(SSHCredentials())
        release = client.read_os_release("192.168.1.50")
        client.close()
    """

    def __init__(
        self,
        credentials: Optional[SSHCredentials] = None,
        port: int = defaults.DEFAULT_SSH_PORT,
        connect_timeout: float = defaults.DEFAULT_SSH_TIMEOUT,
    ) -> None:
        self.credentials = credentials or SSHCredentials()
        self.port = port
        self.connect_timeout = connect_timeout
        self._connections: dict[str, SSHConnection] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: SSHConfig) -> "RemoteExecClient":
        """Create a client from the SSH settings."""
        return cls(
            SSHCredentials.from_config(config),
            port=config.port,
            connect_timeout=config.connect_timeout,
        )

    def _connection(self, address: str) -> SSHConnection:
        with self._lock:
            # One connection per address, kept open for reuse
            conn = self._connections.get(address)
            if conn is None:
                conn = SSHConnection(address, self.credentials, self.port, self.connect_timeout)
                self._connections[address] = conn
            return conn

    def exec(
        self,
        address: str,
        command: str,
        output_sink: Optional[OutputSink] = None,
    ) -> str:
        """Run a command and return its standard output.

        Raises:
            RemoteExecError: On connection failure or non-zero exit
        """
        result = self._connection(address).execute(command, output_sink=output_sink)
        if not result.success:
            raise RemoteExecError(
                address,
                command,
                result.error or "Command failed",
                exit_code=result.exit_code if result.exit_code >= 0 else None,
                # Streamed commands carry stderr inside the combined output
                stderr=result.stderr if output_sink is None else result.stdout,
            )
        return result.stdout

    async def exec_async(
        self,
        address: str,
        command: str,
        output_sink: Optional[OutputSink] = None,
    ) -> str:
        """Run exec() in the default executor."""
        return await run_in_executor(self.exec, address, command, output_sink)

    async def read_os_release(self, address: str) -> str:
        """Read the device identity record."""
        return await self.exec_async(address, f"cat {defaults.OS_RELEASE_PATH}")

    def close(self) -> None:
        """Close all open connections."""
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()


class ProgressExec:
    """Runs a long command while a spinner reports its progress.

    The status line reads ``[address] Connecting...`` until the first
    output arrives, then ``[address] <message>``.
    """

    def __init__(self, client: RemoteExecClient, stream: TextIO = sys.stderr) -> None:
        self.client = client
        self.stream = stream

    async def run(self, address: str, command: str, message: str) -> None:
        spinner = Spinner(f"[{address}] Connecting...", stream=self.stream)

        def on_output(_chunk: str) -> None:
            spinner.update(f"[{address}] {message}")

        spinner.start()
        try:
            await self.client.exec_async(address, command, output_sink=on_output)
        finally:
            spinner.stop()
