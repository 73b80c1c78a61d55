import logging
import threading
from pathlib import Path

import pytest

from lorekeeper import KeeperHandler, get_logger, setup_keeper_logging


@pytest.fixture
def app_logger():
    logger = logging.getLogger("lorekeeper_tests.app")
    logger.propagate = False
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True


@pytest.mark.unit
def test_get_logger_is_cached():
    assert get_logger("lorekeeper.x") is get_logger("lorekeeper.x")


@pytest.mark.unit
def test_records_land_in_current_file(make_keeper, app_logger):
    keeper = make_keeper()
    setup_keeper_logging(keeper, logger=app_logger, fmt="%(levelname)s %(message)s")
    app_logger.info("hello %s", "world")
    app_logger.debug("filtered out")
    app_logger.warning("ünïcode")
    assert keeper.current_path.read_bytes().decode("utf-8").splitlines() == [
        "INFO hello world",
        "WARNING ünïcode",
    ]


@pytest.mark.unit
def test_setup_is_idempotent(make_keeper, app_logger):
    keeper = make_keeper()
    setup_keeper_logging(keeper, logger=app_logger)
    setup_keeper_logging(keeper, logger=app_logger)
    assert sum(isinstance(h, KeeperHandler) for h in app_logger.handlers) == 1


@pytest.mark.unit
def test_logging_drives_size_rotation(make_keeper, app_logger):
    keeper = make_keeper(max_size=64, max_archive_count=3)
    setup_keeper_logging(keeper, logger=app_logger, fmt="%(message)s")
    for i in range(50):
        app_logger.info("line %02d %s", i, "x" * 20)

    archives = [r.path for r in keeper.archives()]
    assert len(archives) == 3
    for path in archives + [keeper.current_path]:
        assert Path(path).stat().st_size <= 64
    assert keeper.current_path.read_text().splitlines()[-1].startswith("line 49")


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    previous = root.level
    yield root
    for handler in [h for h in root.handlers if isinstance(h, KeeperHandler)]:
        root.removeHandler(handler)
    root.setLevel(previous)


@pytest.mark.unit
def test_package_records_are_not_written_into_the_keeper(make_keeper, root_logger, capsys):
    keeper = make_keeper(max_size=40)
    setup_keeper_logging(keeper, level=logging.DEBUG)
    keeper.write(b"A" * 30 + b"\n")
    keeper.write(b"B" * 20 + b"\n")

    archives = sorted(keeper.current_path.parent.glob("*-app.log*"))
    assert [p.read_bytes() for p in archives] == [b"A" * 30 + b"\n"]
    assert keeper.current_path.read_bytes() == b"B" * 20 + b"\n"
    assert "Logging error" not in capsys.readouterr().err


@pytest.mark.integration
def test_rotating_while_another_thread_logs_does_not_block(make_keeper, root_logger):
    keeper = make_keeper()
    setup_keeper_logging(keeper, fmt="%(message)s")
    app = logging.getLogger("lorekeeper_tests.worker")
    counts = {"rotations": 0, "records": 0}

    def rotate_loop():
        for _ in range(50):
            keeper.rotate()
            counts["rotations"] += 1

    def log_loop():
        for i in range(500):
            app.info("record %d", i)
            counts["records"] += 1

    threads = [
        threading.Thread(target=rotate_loop, daemon=True),
        threading.Thread(target=log_loop, daemon=True),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=20.0)

    assert not any(t.is_alive() for t in threads), counts
    assert counts == {"rotations": 50, "records": 500}
    files = sorted(keeper.current_path.parent.glob("*-app.log*")) + [keeper.current_path]
    lines = b"".join(p.read_bytes() for p in files).splitlines()
    assert len(lines) == 500
    assert all(line.startswith(b"record ") for line in lines)


@pytest.mark.unit
def test_handler_after_close_reports_error(make_keeper, app_logger, monkeypatch):
    keeper = make_keeper()
    setup_keeper_logging(keeper, logger=app_logger)
    keeper.close()
    errors = []
    handler = next(h for h in app_logger.handlers if isinstance(h, KeeperHandler))
    monkeypatch.setattr(handler, "handleError", lambda record: errors.append(record))
    app_logger.info("too late")
    handler.flush()
    assert len(errors) == 1
