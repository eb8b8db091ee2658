"""Tests for the Docker availability probe."""

from unittest.mock import MagicMock, patch

from docker.errors import DockerException

from lens_cli.integrations.docker import docker_available


class TestDockerAvailable:
    """Test docker_available."""

    def test_no_executable(self):
        """Missing docker CLI short-circuits without touching the SDK."""
        with (
            patch("lens_cli.integrations.docker.shutil.which", return_value=None),
            patch("lens_cli.integrations.docker.docker.from_env") as from_env,
        ):
            status = docker_available()

        assert not status.available
        assert "not in PATH" in status.detail
        assert "Install docker" in status.fix_suggestion
        from_env.assert_not_called()

    def test_daemon_reachable(self):
        """A successful ping reports the executable path and closes the client."""
        client = MagicMock()
        with (
            patch("lens_cli.integrations.docker.shutil.which", return_value="/usr/bin/docker"),
            patch("lens_cli.integrations.docker.docker.from_env", return_value=client) as from_env,
        ):
            status = docker_available(timeout=3)

        assert status.available
        assert status.detail == "/usr/bin/docker"
        assert status.fix_suggestion is None
        from_env.assert_called_once_with(timeout=3)
        client.ping.assert_called_once()
        client.close.assert_called_once()

    def test_daemon_unreachable(self):
        """SDK errors are reported, not raised."""
        with (
            patch("lens_cli.integrations.docker.shutil.which", return_value="/usr/bin/docker"),
            patch(
                "lens_cli.integrations.docker.docker.from_env",
                side_effect=DockerException("Error while fetching server API version"),
            ),
        ):
            status = docker_available()

        assert not status.available
        assert status.detail.startswith("Docker daemon unreachable")
        assert status.fix_suggestion == "Start the Docker daemon and confirm `docker info` succeeds"

    def test_ping_failure_closes_client(self):
        client = MagicMock()
        client.ping.side_effect = DockerException("connection refused")
        with (
            patch("lens_cli.integrations.docker.shutil.which", return_value="/usr/bin/docker"),
            patch("lens_cli.integrations.docker.docker.from_env", return_value=client),
        ):
            status = docker_available()

        assert not status.available
        client.close.assert_called_once()
