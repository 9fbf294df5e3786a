"""
Analysis queue backends and the background analysis job.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from config.settings import AnalysisQueueBackend
from crew.analysis_orchestrator import AnalysisOrchestrator
from services.proposals import ProposalService
from workers.analysis import analyze_and_record, run_proposal_analysis_job
from workers.queue import (
    ANALYSIS_JOB,
    ArqAnalysisQueue,
    InProcessAnalysisQueue,
    create_analysis_queue,
)
from tests.conftest import FakeReasoner, add_response, add_rfp, make_settings


@pytest.mark.unit
class TestInProcessAnalysisQueue:

    async def test_handles_every_item(self):
        handled = []

        async def handler(response_id):
            await asyncio.sleep(0)
            handled.append(response_id)

        queue = InProcessAnalysisQueue(handler, workers=2)
        await queue.start()
        ids = [uuid.uuid4() for _ in range(5)]
        for response_id in ids:
            await queue.submit(response_id)

        await queue.join()
        await queue.stop()

        assert sorted(handled) == sorted(ids)
        assert queue.pending == 0

    async def test_handler_failure_does_not_stop_consumer(self):
        handled = []

        async def handler(response_id):
            if not handled:
                handled.append(None)
                raise RuntimeError("first one fails")
            handled.append(response_id)

        queue = InProcessAnalysisQueue(handler, workers=1)
        await queue.start()
        await queue.submit(uuid.uuid4())
        second = uuid.uuid4()
        await queue.submit(second)

        await queue.join()
        await queue.stop()

        assert handled == [None, second]

    async def test_submit_before_start_is_kept(self):
        handler = AsyncMock()
        queue = InProcessAnalysisQueue(handler)
        response_id = uuid.uuid4()

        await queue.submit(response_id)
        assert queue.pending == 1

        await queue.start()
        await queue.join()
        await queue.stop()

        handler.assert_awaited_once_with(response_id)


@pytest.mark.unit
class TestArqAnalysisQueue:

    async def test_enqueues_job_with_stable_id(self, tmp_path):
        redis = MagicMock()
        redis.enqueue_job = AsyncMock()
        queue = ArqAnalysisQueue(make_settings(tmp_path), redis=redis)
        response_id = uuid.uuid4()

        await queue.submit(response_id)

        redis.enqueue_job.assert_awaited_once_with(
            ANALYSIS_JOB,
            str(response_id),
            _job_id=f"analysis:{response_id}",
        )

    async def test_redis_failure_is_logged(self, tmp_path, caplog):
        redis = MagicMock()
        redis.enqueue_job = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        queue = ArqAnalysisQueue(make_settings(tmp_path), redis=redis)

        await queue.submit(uuid.uuid4())

        assert "Could not enqueue analysis" in caplog.text

    def test_backend_selection(self, tmp_path):
        handler = AsyncMock()

        inline = create_analysis_queue(make_settings(tmp_path), handler)
        arq = create_analysis_queue(
            make_settings(tmp_path, analysis_queue_backend=AnalysisQueueBackend.ARQ), handler
        )

        assert isinstance(inline, InProcessAnalysisQueue)
        assert isinstance(arq, ArqAnalysisQueue)


@pytest.mark.integration
class TestAnalysisJob:

    async def test_analyze_and_record(self, app_settings, session_factory, db):
        proposals = ProposalService(AnalysisOrchestrator(app_settings, FakeReasoner()))
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        result = await analyze_and_record(session_factory, proposals, str(response.id))

        assert result["status"] == "completed"
        assert result["score"] == 82
        stored = await proposals.get_response(db, response.id)
        await db.refresh(stored)
        assert stored.status == "analyzed"

    async def test_unavailable_is_skipped(self, app_settings, session_factory, db):
        proposals = ProposalService(AnalysisOrchestrator(app_settings))
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        result = await analyze_and_record(session_factory, proposals, response.id)

        assert result["status"] == "skipped"

    async def test_missing_response_fails(self, app_settings, session_factory):
        proposals = ProposalService(AnalysisOrchestrator(app_settings, FakeReasoner()))

        result = await analyze_and_record(session_factory, proposals, uuid.uuid4())

        assert result["status"] == "failed"
        assert result["error"] == "Vendor response not found"

    async def test_arq_job_uses_worker_components(self, app_settings, session_factory, db):
        proposals = ProposalService(
            AnalysisOrchestrator(app_settings, FakeReasoner(error=RuntimeError("rate limited")))
        )
        components = MagicMock(session_factory=session_factory, proposals=proposals)
        rfp = await add_rfp(db)
        response = await add_response(db, rfp)

        result = await run_proposal_analysis_job({"components": components}, str(response.id))

        assert result["status"] == "failed"
        assert "rate limited" in result["error"]
