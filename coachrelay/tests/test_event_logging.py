from coachrelay.observability import logging as event_logging


def test_format_fields_sorts_keys_and_quotes_spaces():
    line = event_logging.format_fields(
        {"webhook": "primary", "attempts": 2, "last_error": "candidate=a reason=HTTP 502", "fallback": False}
    )
    assert line == 'attempts=2 fallback=False last_error="candidate=a reason=HTTP 502" webhook=primary'


def test_format_fields_quotes_empty_values():
    assert event_logging.format_fields({"last_error": "", "reason": None}) == 'last_error="" reason=""'


def test_log_event_emits_single_key_value_line(monkeypatch):
    lines: list[str] = []

    class Recorder:
        def info(self, msg, *args):
            lines.append(msg % args)

    monkeypatch.setattr(event_logging, "_events", Recorder())

    event_logging.log_event("relay_succeeded", request_id="r-1", attempts=1)
    event_logging.log_event("directory_fallback")

    assert lines == ["event=relay_succeeded attempts=1 request_id=r-1", "event=directory_fallback"]
