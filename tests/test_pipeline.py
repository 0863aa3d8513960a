"""Tests for the ordered message pipeline."""

from unittest.mock import MagicMock

import pytest
from reactivex.subject import Subject

from rxcord.gateway import (
    EnvelopeDecode,
    Frame,
    HeartbeatIntercept,
    Pipeline,
    PipelineBuilder,
    RawMessage,
    Sequence,
    SequenceUpdate,
    TextFilter,
    UserHandler,
    build_gateway_pipeline,
)
from rxcord.mechanism import EnvelopeDecodeError, HandlerError


@pytest.fixture
def driver():
    return MagicMock()


@pytest.fixture
def beat_now():
    return MagicMock()


def _pipeline(handler, driver, beat_now, sequence=None, **kwargs):
    return build_gateway_pipeline(
        sequence or Sequence(), driver, beat_now, handler, **kwargs
    )


def test_stage_order():
    pipeline = _pipeline(print, MagicMock(), MagicMock())
    assert pipeline.names == ("text", "decode", "sequence", "heartbeat", "handler")
    assert len(pipeline) == 5
    assert isinstance(pipeline["sequence"], SequenceUpdate)


def test_dispatch_reaches_handler_and_updates_sequence(driver, beat_now):
    received = []
    sequence = Sequence()
    pipeline = _pipeline(received.append, driver, beat_now, sequence)

    pipeline.handle(RawMessage('{"op":0,"s":3,"t":"READY","d":{}}'))

    assert [f.t for f in received] == ["READY"]
    assert sequence.value == 3
    driver.start.assert_not_called()
    beat_now.assert_not_called()


def test_out_of_order_sequence_kept_at_maximum(driver, beat_now):
    sequence = Sequence()
    pipeline = _pipeline(lambda f: None, driver, beat_now, sequence)
    for s in (5, 2, 9, 7):
        pipeline.handle(RawMessage('{"op":0,"s":%d,"t":"X","d":null}' % s))
    assert sequence.value == 9


def test_hello_starts_heartbeat(driver, beat_now):
    received = []
    pipeline = _pipeline(received.append, driver, beat_now)
    pipeline.handle(RawMessage('{"op":10,"s":null,"t":null,"d":{"heartbeat_interval":41250}}'))
    driver.start.assert_called_once_with(41250)
    assert received[0].op == 10


def test_hello_without_interval_propagates(driver, beat_now):
    pipeline = _pipeline(lambda f: None, driver, beat_now)
    with pytest.raises(EnvelopeDecodeError):
        pipeline.handle(RawMessage('{"op":10,"d":{}}'))
    driver.start.assert_not_called()


def test_heartbeat_request_beats_immediately(driver, beat_now):
    received = []
    pipeline = _pipeline(received.append, driver, beat_now)
    pipeline.handle(RawMessage('{"op":1,"s":null,"t":null,"d":null}'))
    beat_now.assert_called_once_with()
    assert received[0].op == 1


def test_sequence_merged_before_heartbeat_request(driver):
    sequence = Sequence()
    seen = []
    pipeline = _pipeline(lambda f: None, driver, lambda: seen.append(sequence.value), sequence)
    pipeline.handle(RawMessage('{"op":1,"s":8,"d":null}'))
    assert seen == [8]


def test_binary_frame_dropped(driver, beat_now):
    received = []
    logger = MagicMock()
    pipeline = _pipeline(received.append, driver, beat_now, logger=logger)

    pipeline.handle(RawMessage(b"\x00\x01"))
    pipeline.handle(RawMessage('{"op":11,"d":null}'))

    assert [f.op for f in received] == [11]
    assert pipeline["text"].dropped == 1
    assert logger.warning.called


def test_decode_error_propagates(driver, beat_now):
    received = []
    pipeline = _pipeline(received.append, driver, beat_now)
    with pytest.raises(EnvelopeDecodeError):
        pipeline.handle(RawMessage("{broken"))
    assert received == []


def test_handler_error_does_not_stop_next_frame(driver, beat_now):
    received = []
    errors = []
    logger = MagicMock()

    def handler(frame):
        if frame.s == 1:
            raise RuntimeError("handler bug")
        received.append(frame.s)

    pipeline = _pipeline(handler, driver, beat_now, logger=logger, on_handler_error=errors.append)
    pipeline.handle(RawMessage('{"op":0,"s":1,"t":"A","d":null}'))
    pipeline.handle(RawMessage('{"op":0,"s":2,"t":"B","d":null}'))

    assert received == [2]
    assert pipeline["handler"].errors == 1
    assert isinstance(errors[0], HandlerError)
    assert isinstance(errors[0].exception, RuntimeError)
    assert "traceback" in logger.error.call_args.kwargs


def test_observer_handler():
    subject = Subject()
    received = []
    subject.subscribe(received.append)
    stage = UserHandler(subject)
    stage.handle(Frame(op=0, s=1), lambda m: None)
    assert received[0].s == 1


def test_handler_must_be_callable():
    with pytest.raises(TypeError):
        UserHandler(42)


def test_start_from_named_stage(driver, beat_now):
    received = []
    pipeline = _pipeline(received.append, driver, beat_now)
    pipeline.handle(Frame(op=0, s=4, t="X"), start="sequence")
    assert received[0].s == 4


def test_unknown_stage_name(driver, beat_now):
    with pytest.raises(KeyError):
        _pipeline(print, driver, beat_now).index("nope")


def test_builder_rejects_duplicates_and_empty():
    with pytest.raises(ValueError):
        PipelineBuilder().add(TextFilter()).add(TextFilter()).build()
    with pytest.raises(ValueError):
        Pipeline([])


def test_custom_pipeline():
    received = []
    pipeline = (
        PipelineBuilder()
        .add(TextFilter())
        .add(EnvelopeDecode())
        .add(UserHandler(received.append))
        .build()
    )
    pipeline.handle(RawMessage('{"op":11,"d":null}'))
    assert repr(pipeline) == "text -> decode -> handler"
    assert received[0].op == 11


def test_heartbeat_intercept_forwards_other_ops(driver, beat_now):
    forwarded = []
    HeartbeatIntercept(driver, beat_now).handle(Frame(op=11), forwarded.append)
    assert forwarded[0].op == 11
    driver.start.assert_not_called()
    beat_now.assert_not_called()
