import os
import re

import pytest

from rproxy.logger import LogLevel, Logger, LogUnit, SetLogFileError


def test_log_unit_format_layout():
    unit = LogUnit()
    data = unit.format(LogLevel.NOTICE, "main.c", 42, "hello")
    assert data == unit.data
    assert re.fullmatch(
        rb"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{6} N main\.c:42 hello\n", data
    )


@pytest.mark.parametrize(
    "level, tag",
    [
        (LogLevel.VERB, "V"),
        (LogLevel.DEBUG, "D"),
        (LogLevel.INFO, "I"),
        (LogLevel.WARN, "W"),
        (LogLevel.ERROR, "E"),
    ],
)
def test_log_unit_level_tag(level, tag):
    data = LogUnit().format(level, "f.c", 1, "x")
    assert f" {tag} f.c:1 x\n".encode() in data


def test_log_unit_truncated():
    unit = LogUnit()
    unit.format(LogLevel.ERROR, "f.c", 1, "a" * 5000)
    assert len(unit) == LogUnit.MAX_LOG_LEN
    assert unit.data.endswith(b"a\n")


def test_default_samples():
    logger = Logger()
    assert logger.log_sample(LogLevel.VERB) == 0
    assert logger.log_sample(LogLevel.DEBUG) == 0
    assert logger.log_sample(LogLevel.INFO) == 100
    assert logger.log_sample(LogLevel.ERROR) == 1


def test_disabled_level_never_sampled():
    logger = Logger()
    assert all(logger.sampled(LogLevel.VERB) is None for _ in range(10))


def test_sampling_keeps_every_nth():
    logger = Logger()
    logger.set_log_sample(LogLevel.WARN, 3)
    assert logger.log_sample(LogLevel.WARN) == 3
    kept = [logger.sampled(LogLevel.WARN) is not None for _ in range(6)]
    assert kept == [False, False, True, False, False, True]


def test_log_written_to_file(tmp_path):
    target = tmp_path / "p.log"
    logger = Logger()
    logger.set_log_file(str(target), 0, 0)
    logger.start()
    assert logger.log(LogLevel.NOTICE, "f.c", 1, "hello")
    assert not logger.log(LogLevel.VERB, "f.c", 2, "quiet")
    logger.stop()
    text = target.read_text()
    assert " N f.c:1 hello\n" in text
    assert "quiet" not in text


def test_missed_logs_are_reported(tmp_path):
    target = tmp_path / "p.log"
    logger = Logger(max_log_unit_num=2)
    logger.set_log_file(str(target), 0, 0)
    assert logger.log(LogLevel.ERROR, "f.c", 1, "first")
    assert logger.log(LogLevel.ERROR, "f.c", 2, "second")
    assert not logger.log(LogLevel.ERROR, "f.c", 3, "third")
    assert logger.miss_logs == 1
    logger.start()
    logger.stop()
    text = target.read_text()
    assert "first" in text and "second" in text
    assert "third" not in text
    assert "MissLog count 1" in text


def test_no_miss_when_disallowed(tmp_path):
    target = tmp_path / "p.log"
    logger = Logger(max_log_unit_num=1)
    logger.allow_miss_log = False
    logger.set_log_file(str(target), 0, 0)
    logger.start()
    results = [logger.log(LogLevel.ERROR, "f.c", i, f"msg{i}") for i in range(5)]
    logger.stop()
    assert results == [True] * 5
    lines = target.read_text().splitlines()
    assert [line.rsplit(" ", 1)[1] for line in lines] == [f"msg{i}" for i in range(5)]


def test_set_log_file_failure(tmp_path):
    logger = Logger()
    with pytest.raises(SetLogFileError):
        logger.set_log_file(str(tmp_path / "missing" / "p.log"), 0, 0)


def test_log_file_fd(tmp_path):
    target = tmp_path / "p.log"
    logger = Logger()
    assert logger.log_file_fd() == -1
    logger.set_log_file(str(target), 0, 0)
    assert os.fstat(logger.log_file_fd()).st_ino == os.stat(target).st_ino