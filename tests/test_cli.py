import signal
import threading
import time

import pytest

from goquant.cli import main


def _interrupt_when_ready(original):
    deadline = time.monotonic() + 10
    while signal.getsignal(signal.SIGINT) is original and time.monotonic() < deadline:
        time.sleep(0.01)
    time.sleep(0.2)
    signal.pthread_kill(threading.main_thread().ident, signal.SIGINT)


def test_main_stops_on_sigint(tmp_path, capsys):
    original = signal.getsignal(signal.SIGINT)
    killer = threading.Thread(target=_interrupt_when_ready, args=(original,), daemon=True)
    killer.start()

    code = main(
        [
            "--port", "0",
            "--journal", str(tmp_path / "journal.log"),
            "--snapshot", str(tmp_path / "snapshot.json"),
        ]
    )
    killer.join(timeout=10)

    assert code == 0
    out = capsys.readouterr().out
    assert "=== MAIN FUNCTION STARTED ===" in out
    assert f"Interrupt signal ({int(signal.SIGINT)}) received" in out
    assert out.rstrip().endswith("Server has shut down.")
    assert signal.getsignal(signal.SIGINT) is original
    assert (tmp_path / "journal.log").exists()


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as excinfo:
        main(["--port", "abc"])
    assert excinfo.value.code == 2