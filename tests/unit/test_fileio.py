"""Unit tests for atomic writes, retries and per-path locks."""

import asyncio
import errno
import os
import stat

import pytest
from unittest.mock import AsyncMock, patch

from spec_workflow.fileio import (
    PathLockRegistry,
    read_text,
    write_file_with_retry,
    write_text_atomic,
)


class TestAtomicWrite:
    """Test cases for write_text_atomic and read_text."""

    def test_write_and_read(self, tmp_path):
        """Test content round-trips exactly, CRLF included."""
        target = tmp_path / "tasks.md"

        write_text_atomic(target, "- [ ] 1 Task\r\n")

        assert read_text(target) == "- [ ] 1 Task\r\n"
        assert target.read_bytes() == b"- [ ] 1 Task\r\n"

    def test_no_temp_files_left(self, tmp_path):
        """Test the temporary file is renamed into place."""
        write_text_atomic(tmp_path / "a.md", "x")

        assert [p.name for p in tmp_path.iterdir()] == ["a.md"]

    def test_existing_mode_is_kept(self, tmp_path):
        """Test replacing a file keeps its permission bits."""
        target = tmp_path / "a.md"
        target.write_text("old", encoding="utf-8")
        os.chmod(target, 0o640)

        write_text_atomic(target, "new")

        assert stat.S_IMODE(os.stat(target).st_mode) == 0o640

    def test_failed_write_cleans_up(self, tmp_path):
        """Test the temp file is removed when the replace fails."""
        with patch("spec_workflow.fileio.os.replace", side_effect=OSError("boom")):
            with pytest.raises(OSError, match="boom"):
                write_text_atomic(tmp_path / "a.md", "x")

        assert list(tmp_path.iterdir()) == []


class TestWriteWithRetry:
    """Test cases for write_file_with_retry."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, tmp_path):
        """Test a plain write."""
        target = tmp_path / "a.md"

        await write_file_with_retry(target, "content")

        assert target.read_text(encoding="utf-8") == "content"

    @pytest.mark.asyncio
    async def test_transient_error_retried(self, tmp_path):
        """Test a transient failure is retried until it succeeds."""
        target = tmp_path / "a.md"
        calls = []

        def flaky(path, content):
            calls.append(path)
            if len(calls) < 3:
                raise OSError(errno.EBUSY, "busy")
            path.write_text(content, encoding="utf-8")

        with patch("spec_workflow.fileio.write_text_atomic", side_effect=flaky):
            await write_file_with_retry(target, "content", base_delay=0)

        assert len(calls) == 3
        assert target.read_text(encoding="utf-8") == "content"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, tmp_path):
        """Test the last error is raised once retries are exhausted."""
        with patch("spec_workflow.fileio.write_text_atomic", side_effect=OSError(errno.EBUSY, "busy")) as mock_write:
            with pytest.raises(OSError, match="busy"):
                await write_file_with_retry(tmp_path / "a.md", "x", max_retries=2, base_delay=0)

        assert mock_write.call_count == 2

    @pytest.mark.asyncio
    async def test_permission_error_not_retried(self, tmp_path):
        """Test permission failures are raised immediately."""
        with patch("spec_workflow.fileio.write_text_atomic", side_effect=PermissionError("denied")) as mock_write:
            with pytest.raises(PermissionError):
                await write_file_with_retry(tmp_path / "a.md", "x", base_delay=0)

        assert mock_write.call_count == 1

    @pytest.mark.asyncio
    async def test_eperm_errno_not_retried(self, tmp_path):
        """Test a generic OSError carrying EPERM is treated as a permission failure."""
        with patch("spec_workflow.fileio.write_text_atomic", side_effect=OSError(errno.EPERM, "nope")) as mock_write:
            with pytest.raises(OSError):
                await write_file_with_retry(tmp_path / "a.md", "x", base_delay=0)

        assert mock_write.call_count == 1

    @pytest.mark.asyncio
    async def test_backoff_delays(self, tmp_path):
        """Test delays double between attempts."""
        with patch("spec_workflow.fileio.write_text_atomic", side_effect=OSError(errno.EBUSY, "busy")), \
                patch("spec_workflow.fileio.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(OSError):
                await write_file_with_retry(tmp_path / "a.md", "x", max_retries=3, base_delay=0.1)

        delays = [call.args[0] for call in mock_sleep.call_args_list]
        assert delays == pytest.approx([0.1, 0.2])


class TestPathLockRegistry:
    """Test cases for PathLockRegistry."""

    @pytest.mark.asyncio
    async def test_equivalent_paths_share_lock(self, tmp_path):
        """Test equivalent spellings of a path share one lock."""
        registry = PathLockRegistry()
        entered = asyncio.Event()

        async def other():
            async with registry.hold(str(tmp_path / "sub" / ".." / "a.md")):
                entered.set()

        async with registry.hold(tmp_path / "a.md"):
            task = asyncio.create_task(other())
            await asyncio.sleep(0.01)
            assert not entered.is_set()
            assert len(registry) == 1
        await task

        assert entered.is_set()

    @pytest.mark.asyncio
    async def test_idle_locks_are_dropped(self, tmp_path):
        """Test entries disappear once nobody holds or waits for them."""
        registry = PathLockRegistry()

        for index in range(3):
            async with registry.hold(tmp_path / f"{index}.json"):
                assert len(registry) == 1

        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_hold_serializes(self, tmp_path):
        """Test two holders of the same path never overlap."""
        registry = PathLockRegistry()
        target = tmp_path / "a.md"
        active = 0
        peak = 0

        async def worker():
            nonlocal active, peak
            async with registry.hold(target):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0)
                active -= 1

        await asyncio.gather(*[worker() for _ in range(5)])

        assert peak == 1
        assert len(registry) == 0
