# tests/test_rootfs.py

from __future__ import annotations

import threading
import zipfile
import zlib

import pytest

from bootloader.fs import RamFileSystem
from bootloader.net import RequestMethod, RequestStatus
from bootloader.rootfs import (
    ExtractReport,
    RootfsBuffer,
    extract_rootfs,
    fetch_rootfs,
    make_extract_task,
    make_fetch_task,
    sha256_hex,
)
from bootloader.tasks import TaskExecutor
from bootloader.ui import FAIL_FRAME, OK_FRAME, Renderer

from .fakes import (
    FakeTransport,
    RecordingFs,
    RecordingLog,
    corrupt_first_local_header,
    deflate_then_garbage,
    make_raw_zip,
    make_zip,
)


# ---------------- buffer ----------------

def test_buffer_is_replaced_on_every_set(buffer: RootfsBuffer) -> None:
    buffer.set(b"first payload")
    buffer.set(b"2nd")
    assert buffer.try_snapshot() == b"2nd"
    assert len(buffer) == 3


def test_snapshot_is_a_copy(buffer: RootfsBuffer) -> None:
    buffer.set(b"abc")
    snap = buffer.try_snapshot()
    buffer.set(b"xyz")
    assert snap == b"abc"


def test_snapshot_fails_while_locked(buffer: RootfsBuffer) -> None:
    buffer.set(b"abc")
    with buffer._lock:
        assert buffer.try_snapshot() is None


# ---------------- fetch ----------------

def test_fetch_success_fills_buffer(buffer: RootfsBuffer, log: RecordingLog) -> None:
    transport = FakeTransport(payload=b"zipbytes")
    assert fetch_rootfs(transport, buffer, log) is True
    assert transport.calls == [("rootfs.zip", RequestMethod.GET, "{}")]
    assert buffer.try_snapshot() == b"zipbytes"
    assert log.lines == []


def test_fetch_failure_logs_and_keeps_buffer(buffer: RootfsBuffer, log: RecordingLog) -> None:
    buffer.set(b"old")
    transport = FakeTransport(status=RequestStatus.FAIL)
    assert fetch_rootfs(transport, buffer, log) is False
    assert buffer.try_snapshot() == b"old"
    assert log.lines == ["Request exited with status `RequestStatus.FAIL`"]


def test_fetch_checksum(buffer: RootfsBuffer, log: RecordingLog) -> None:
    payload = b"payload"
    transport = FakeTransport(payload=payload)

    assert fetch_rootfs(transport, buffer, log, expected_sha256="0" * 64) is False
    assert "Checksum mismatch" in log.lines[0]
    assert buffer.try_snapshot() == b""

    assert fetch_rootfs(transport, buffer, log, expected_sha256=sha256_hex(payload).upper()) is True
    assert buffer.try_snapshot() == payload


def test_sha256_hex_known_value() -> None:
    assert sha256_hex(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


# ---------------- extract ----------------

def test_extract_creates_dir_then_file(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    buffer.set(make_zip([("dir/", None), ("dir/file.txt", b"hi")]))
    fs = RecordingFs(ramfs)

    report = extract_rootfs(buffer, fs, log, delay=0)

    assert report.succeeded()
    assert fs.ops == [("dir", "C:/dir/"), ("file", "C:/dir/file.txt")]
    assert ramfs.is_dir("C:/dir/")
    assert ramfs.read("C:/dir/file.txt") == b"hi"
    assert log.lines == ['Extracted "C:/dir/"', 'Extracted "C:/dir/file.txt"']
    assert report.extracted == ["C:/dir/", "C:/dir/file.txt"]


def test_extract_skips_corrupt_entry(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    archive = make_zip([("broken.bin", b"x" * 100), ("good.txt", b"fine")])
    buffer.set(corrupt_first_local_header(archive))

    report = extract_rootfs(buffer, ramfs, log, delay=0)

    assert report.ok
    assert report.succeeded()
    assert report.skipped == ["broken.bin"]
    assert ramfs.read("C:/good.txt") == b"fine"
    assert not ramfs.exists("C:/broken.bin")
    assert "Failed to read part" in log.lines[0]
    assert "broken.bin" in log.lines[0]
    assert log.lines[1] == 'Extracted "C:/good.txt"'


def test_strict_mode_fails_on_skips() -> None:
    report = ExtractReport(ok=True, skipped=["a"])
    assert report.succeeded() is True
    assert report.succeeded(strict=True) is False
    assert ExtractReport(ok=False).succeeded() is False


def test_extract_rejects_non_archive(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    buffer.set(b"this is not a zip file")
    report = extract_rootfs(buffer, ramfs, log, delay=0)
    assert not report.ok
    assert report.error
    assert "Could not open rootfs archive" in log.lines[0]


def test_extract_fails_when_buffer_busy(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    buffer.set(make_zip([("a.txt", b"a")]))
    with buffer._lock:
        report = extract_rootfs(buffer, ramfs, log, delay=0)
    assert not report.ok
    assert log.lines == ["Could not acquire rootfs lock: buffer is busy"]
    assert not ramfs.exists("C:/a.txt")


def test_extract_pauses_between_entries(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    buffer.set(make_zip([("a/", None), ("a/b", b"1"), ("c", b"2")]))
    pauses: list[float] = []
    extract_rootfs(buffer, ramfs, log, delay=0.2, sleep=pauses.append)
    assert pauses == [0.2, 0.2, 0.2]


def test_extract_without_directory_entries(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    buffer.set(make_zip([("etc/hosts", b"127.0.0.1 localhost\n")]))
    assert extract_rootfs(buffer, ramfs, log, delay=0).succeeded()
    assert ramfs.read("C:/etc/hosts") == b"127.0.0.1 localhost\n"


def test_extract_skips_escaping_paths(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    buffer.set(make_zip([("../evil", b"x"), ("ok", b"y")]))
    report = extract_rootfs(buffer, ramfs, log, delay=0)
    assert report.skipped == ["../evil"]
    assert ramfs.read("C:/ok") == b"y"


def test_extract_task_strict(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    archive = make_zip([("broken.bin", b"x"), ("good.txt", b"fine")])
    buffer.set(corrupt_first_local_header(archive))

    assert make_extract_task(buffer, ramfs, log, delay=0)() is True
    assert make_extract_task(buffer, ramfs, log, strict=True, delay=0)() is False


def test_crc_mismatch_keeps_decoded_bytes(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    original = b"welcome to the guest\n"
    flipped = b"v" + original[1:]
    buffer.set(make_raw_zip(
        "etc/motd", flipped,
        method=zipfile.ZIP_STORED, file_size=len(flipped), crc=zlib.crc32(original),
    ))

    report = extract_rootfs(buffer, ramfs, log, delay=0)

    assert ramfs.read("C:/etc/motd") == flipped
    assert report.damaged == ["C:/etc/motd"]
    assert report.extracted == ["C:/etc/motd"]
    assert report.skipped == []
    assert "damaged" in log.lines[0] and "etc/motd" in log.lines[0]
    assert log.lines[1] == 'Extracted "C:/etc/motd"'


def test_decode_error_midstream_keeps_prefix(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    good = b"guest log line\n" * 1000
    buffer.set(make_raw_zip(
        "var/log/boot", deflate_then_garbage(good),
        method=zipfile.ZIP_DEFLATED, file_size=len(good) + 100, crc=zlib.crc32(good),
    ))

    report = extract_rootfs(buffer, ramfs, log, delay=0)

    written = ramfs.read("C:/var/log/boot")
    assert 0 < len(written) < len(good)
    assert written == good[:len(written)]
    # at most one decompressor window of output is lost
    assert len(written) >= len(good) - 2 * zipfile.ZipExtFile.MIN_READ_SIZE
    assert report.damaged == ["C:/var/log/boot"]
    assert report.succeeded()
    assert not report.succeeded(strict=True)


def test_strict_mode_fails_on_damage() -> None:
    report = ExtractReport(ok=True, damaged=["C:/a"])
    assert report.succeeded() is True
    assert report.succeeded(strict=True) is False


def test_extract_task_reports_damage(buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    original = b"abc"
    buffer.set(make_raw_zip("a", b"abd", method=zipfile.ZIP_STORED, file_size=3, crc=zlib.crc32(original)))

    assert make_extract_task(buffer, ramfs, log, delay=0)() is True
    assert log.lines[-1] == "1 archive entries were damaged"
    assert make_extract_task(buffer, ramfs, log, strict=True, delay=0)() is False


# ---------------- pipeline through the executor ----------------

def _pipeline(transport: FakeTransport, ramfs: RamFileSystem) -> tuple[TaskExecutor, Renderer, list[str]]:
    from bootloader.ui import BufferDisplay

    executor = TaskExecutor()
    renderer = Renderer(BufferDisplay(), executor, timestamp=lambda: "T")
    executor.subscribe(renderer.register_completed)
    buffer = RootfsBuffer()
    extract_calls: list[str] = []
    extract = make_extract_task(buffer, ramfs, renderer.log, delay=0)

    def _extract() -> bool:
        extract_calls.append("extract")
        return extract()

    executor.register("Fetching rootfs.zip", make_fetch_task(transport, buffer, renderer.log))
    executor.register("Extracting rootfs.zip", _extract)
    return executor, renderer, extract_calls


def test_transport_failure_halts_before_extract(ramfs: RamFileSystem) -> None:
    executor, renderer, extract_calls = _pipeline(FakeTransport(status=RequestStatus.FAIL), ramfs)

    assert executor.run() is False

    assert extract_calls == []
    assert executor.completed_tasks() == [0]
    lines = renderer.raw_log().split("\n")[1:]
    assert sum(1 for line in lines if line.startswith(FAIL_FRAME)) == 1
    assert lines[-1] == f"{FAIL_FRAME} Fetching rootfs.zip"


def test_pipeline_success(ramfs: RamFileSystem) -> None:
    payload = make_zip([("dir/", None), ("dir/file.txt", b"hi")])
    executor, renderer, extract_calls = _pipeline(FakeTransport(payload=payload), ramfs)

    assert executor.run() is True

    assert extract_calls == ["extract"]
    assert executor.completed_tasks() == [0, 1]
    assert ramfs.read("C:/dir/file.txt") == b"hi"
    log = renderer.raw_log()
    assert log.endswith(f"\n{OK_FRAME} Extracting rootfs.zip")
    assert f"\n{OK_FRAME} Fetching rootfs.zip\n" in log


def test_extract_while_fetch_holds_lock(ramfs: RamFileSystem, log: RecordingLog) -> None:
    buffer = RootfsBuffer()
    buffer.set(make_zip([("a", b"1")]))
    holding = threading.Event()
    done = threading.Event()

    def hold() -> None:
        with buffer._lock:
            holding.set()
            done.wait(2)

    t = threading.Thread(target=hold)
    t.start()
    holding.wait(2)
    try:
        assert make_extract_task(buffer, ramfs, log, delay=0)() is False
    finally:
        done.set()
        t.join()


@pytest.mark.parametrize("strict", [False, True])
def test_clean_archive_passes_in_both_modes(strict: bool, buffer: RootfsBuffer, ramfs: RamFileSystem, log: RecordingLog) -> None:
    buffer.set(make_zip([("x", b"1")]))
    assert make_extract_task(buffer, ramfs, log, strict=strict, delay=0)() is True
