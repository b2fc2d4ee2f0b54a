from goquant.order import Order, OrderType, Side, now_ms
from goquant.persistence import Persistence, format_number


def make_order(order_id="o1", side=Side.BUY):
    return Order(
        order_id,
        "BTC-USDT",
        side,
        OrderType.LIMIT,
        price=10000.0,
        quantity=1.0,
        timestamp=1700000000123,
    )


def read_lines(path):
    return path.read_text(encoding="utf-8").splitlines()


def test_format_number_whole_floats_drop_fraction():
    assert format_number(10000.0) == "10000"
    assert format_number(1.0) == "1"


def test_format_number_fractions_and_small_values():
    assert format_number(0.5) == "0.5"
    assert format_number(1e-07) == "1e-07"


def test_format_number_integers_unchanged():
    assert format_number(1700000000123) == "1700000000123"


def test_journal_line_fields(tmp_path):
    journal = tmp_path / "journal.log"
    before = now_ms()
    with Persistence(journal, tmp_path / "snapshot.json") as persist:
        persist.log_order_event(make_order(), "NEW")
    (line,) = read_lines(journal)
    parts = line.split("|")
    assert before <= int(parts[0]) <= now_ms()
    assert parts[1:] == [
        "NEW",
        "o1",
        "BTC-USDT",
        "BUY",
        "1",
        "10000",
        "1",
        "0",
        "1700000000123",
    ]


def test_sell_side_written(tmp_path):
    journal = tmp_path / "journal.log"
    with Persistence(journal, tmp_path / "snapshot.json") as persist:
        persist.log_order_event(make_order(side=Side.SELL), "RESTED")
    parts = read_lines(journal)[0].split("|")
    assert parts[1] == "RESTED"
    assert parts[4] == "SELL"


def test_journal_appends_across_instances(tmp_path):
    journal = tmp_path / "journal.log"
    with Persistence(journal, tmp_path / "snapshot.json") as persist:
        persist.log_order_event(make_order("a"), "NEW")
    with Persistence(journal, tmp_path / "snapshot.json") as persist:
        persist.log_order_event(make_order("b"), "NEW")
    ids = [line.split("|")[2] for line in read_lines(journal)]
    assert ids == ["a", "b"]


def test_closed_journal_ignores_events(tmp_path):
    journal = tmp_path / "journal.log"
    persist = Persistence(journal, tmp_path / "snapshot.json")
    persist.log_order_event(make_order("a"), "NEW")
    persist.close()
    persist.log_order_event(make_order("b"), "NEW")
    persist.close()
    assert len(read_lines(journal)) == 1


def test_unopenable_journal_is_tolerated(tmp_path):
    missing = tmp_path / "no_such_dir" / "journal.log"
    persist = Persistence(missing, tmp_path / "snapshot.json")
    persist.log_order_event(make_order(), "NEW")
    persist.close()
    assert not missing.exists()