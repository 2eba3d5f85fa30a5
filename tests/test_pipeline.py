import json
import logging
import threading

import pytest
from conftest import CAT_ANALYSIS, FakeResponse, FakeSession, FakeStream

from image_ingest.formats import ImageFormat
from image_ingest.models import BlobCreatedEvent, ErrorKind, ImageMetadataRecord
from image_ingest.pipeline import ImagePipeline, PipelineError, PipelineState

CAT = BlobCreatedEvent(url="https://x/container/cat.png", size=8)


def test_happy_path_publishes_record(config, stream):
    session = FakeSession(
        FakeResponse(200, {"description": {"captions": [{"text": "a cat"}], "tags": ["cat", "animal"]}}),
        FakeResponse(200),
    )

    outcome = ImagePipeline(config, session=session).run(CAT, stream)

    assert outcome.state is PipelineState.DONE
    assert outcome.succeeded and not outcome.skipped
    assert outcome.history == [
        PipelineState.START,
        PipelineState.INPUT_CHECKED,
        PipelineState.FORMAT_CHECKED,
        PipelineState.ANALYZED,
        PipelineState.PUBLISHED,
        PipelineState.DONE,
    ]
    assert outcome.image_format is ImageFormat.PNG
    assert outcome.record == ImageMetadataRecord(
        uri="http://www.semanticweb.org/ImagesOntology#cat",
        description="a cat",
        content="https://x/container/cat.png",
        tags=["cat", "animal"],
    )

    analyze_call, publish_call = session.calls
    assert analyze_call["url"] == "https://vision.example/vision/v2.0/analyze"
    assert publish_call["url"] == "https://sparql.example/api/images/create"
    assert publish_call["json"]["Uri"] == "http://www.semanticweb.org/ImagesOntology#cat"
    outcome.raise_for_failure()


@pytest.mark.parametrize("url", ["https://x/container/cat.bmp", "https://x/container/notes.txt", "https://x/container/README"])
def test_unsupported_format_is_skipped(config, stream, url):
    session = FakeSession()

    outcome = ImagePipeline(config, session=session).run(BlobCreatedEvent(url=url), stream)

    assert outcome.state is PipelineState.DONE
    assert outcome.skipped
    assert PipelineState.FORMAT_CHECKED not in outcome.history
    assert session.calls == []
    outcome.raise_for_failure()


def test_missing_stream_aborts_without_calls(config):
    session = FakeSession()

    outcome = ImagePipeline(config, session=session).run(CAT, None)

    assert outcome.state is PipelineState.ABORTED
    assert outcome.error.kind is ErrorKind.MISSING_INPUT
    assert session.calls == []
    with pytest.raises(PipelineError) as excinfo:
        outcome.raise_for_failure()
    assert excinfo.value.state is PipelineState.START


def test_analysis_failure_aborts_before_publish(config, stream):
    session = FakeSession(FakeResponse(503, text="busy", reason="Service Unavailable"))

    outcome = ImagePipeline(config, session=session).run(CAT, stream)

    assert outcome.state is PipelineState.ABORTED
    assert outcome.error.status_code == 503
    assert outcome.record is None
    assert len(session.calls) == 1
    with pytest.raises(PipelineError) as excinfo:
        outcome.raise_for_failure()
    assert excinfo.value.state is PipelineState.FORMAT_CHECKED


def test_publish_failure_reports_failure(config, stream):
    session = FakeSession(FakeResponse(200, CAT_ANALYSIS), FakeResponse(400, text="bad record", reason="Bad Request"))

    outcome = ImagePipeline(config, session=session).run(CAT, stream)

    assert outcome.state is PipelineState.ABORTED
    assert PipelineState.ANALYZED in outcome.history
    assert PipelineState.PUBLISHED not in outcome.history
    assert outcome.analysis.caption == "a cat"
    assert outcome.record is not None
    assert len(session.calls) == 2
    with pytest.raises(PipelineError, match="ANALYZED"):
        outcome.raise_for_failure()


def test_transport_failure_aborts(config, stream, connection_error):
    session = FakeSession(connection_error)

    outcome = ImagePipeline(config, session=session).run(CAT, stream)

    assert outcome.state is PipelineState.ABORTED
    assert outcome.error.kind is ErrorKind.TRANSPORT


def test_timeout_is_passed_to_both_calls(config, stream):
    session = FakeSession(FakeResponse(200, CAT_ANALYSIS), FakeResponse(200))
    timed = type(config)(
        storage_connection_string=config.storage_connection_string,
        subscription_key=config.subscription_key,
        vision_endpoint=config.vision_endpoint,
        sparql_endpoint=config.sparql_endpoint,
        http_timeout=7,
    )

    ImagePipeline(timed, session=session).run(CAT, stream)

    assert [call["timeout"] for call in session.calls] == [7, 7]


def test_injected_session_is_not_closed(config):
    session = FakeSession()
    with ImagePipeline(config, session=session):
        pass
    assert not session.closed


def test_owned_session_is_closed(config, monkeypatch):
    created = FakeSession()
    monkeypatch.setattr("image_ingest.pipeline.create_session", lambda: created)

    with ImagePipeline(config) as pipeline:
        assert pipeline.session is created
    assert created.closed


def test_logs_are_structured_and_context_is_cleared(config, stream, caplog):
    session = FakeSession(FakeResponse(200, CAT_ANALYSIS), FakeResponse(200))

    with caplog.at_level(logging.INFO, logger="image_ingest"):
        ImagePipeline(config, session=session).run(CAT, stream)

    entries = [json.loads(r.getMessage()) for r in caplog.records if r.name == "image_ingest"]
    steps = {entry["step"] for entry in entries}
    assert {"input", "format", "analyze", "publish", "complete"} <= steps
    assert all(entry["blob_url"] == CAT.url for entry in entries)

    from image_ingest.logging_utils import structured_logger

    assert structured_logger.context == {}


def test_null_caption_aborts_before_publish(config, stream):
    session = FakeSession(FakeResponse(200, {"description": {"captions": [{"text": None}], "tags": ["cat"]}}))

    outcome = ImagePipeline(config, session=session).run(CAT, stream)

    assert outcome.state is PipelineState.ABORTED
    assert outcome.error.kind is ErrorKind.DECODE
    assert outcome.record is None
    assert len(session.calls) == 1


class BarrierSession(FakeSession):
    """Holds every analyze request until all runs have reached it."""

    def __init__(self, barrier, *responses):
        super().__init__(*responses)
        self.barrier = barrier

    def post(self, url, **kwargs):
        if url.endswith("/analyze"):
            self.barrier.wait(timeout=5)
        return super().post(url, **kwargs)


def test_concurrent_runs_keep_their_own_log_context(config, caplog):
    urls = {"run-a": "https://x/c/a.png", "run-b": "https://x/c/b.png"}
    barrier = threading.Barrier(len(urls))
    outcomes = {}

    def work(name):
        session = BarrierSession(barrier, FakeResponse(200, CAT_ANALYSIS), FakeResponse(200))
        pipeline = ImagePipeline(config, session=session)
        outcomes[name] = pipeline.run(BlobCreatedEvent(url=urls[name]), FakeStream())

    with caplog.at_level(logging.INFO, logger="image_ingest"):
        threads = [threading.Thread(target=work, args=(name,), name=name) for name in urls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

    assert all(outcome.succeeded for outcome in outcomes.values())

    seen = []
    for record in caplog.records:
        if record.name != "image_ingest" or record.threadName not in urls:
            continue
        entry = json.loads(record.getMessage())
        seen.append((record.threadName, entry.get("blob_url"), entry["step"]))

    steps = {step for _, _, step in seen}
    assert {"input", "format", "analyze", "publish", "complete"} <= steps
    mismatched = [item for item in seen if item[1] != urls[item[0]]]
    assert mismatched == []
