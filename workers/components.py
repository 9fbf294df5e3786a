"""
Component Wiring

Builds the pipeline objects from one Settings value. Used by the API
lifespan, the ARQ worker and the sync CLI so all three run the same graph.
"""

from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from config.settings import Settings
from crew.analysis_orchestrator import AnalysisOrchestrator, Reasoner
from services.content_store import AttachmentStore
from services.inbox_sync import InboxSynchronizer, MailboxFactory
from services.notifications import Notifier, SmtpFactory
from services.proposals import ProposalService
from services.reconciler import ResponseReconciler
from workers.analysis import analyze_and_record
from workers.queue import AnalysisQueue, create_analysis_queue


@dataclass
class Components:
    settings: Settings
    session_factory: async_sessionmaker
    store: AttachmentStore
    orchestrator: AnalysisOrchestrator
    notifier: Notifier
    proposals: ProposalService
    analysis_queue: AnalysisQueue
    reconciler: ResponseReconciler
    synchronizer: InboxSynchronizer


def build_components(
    app_settings: Settings,
    session_factory: async_sessionmaker,
    queue_factory: Optional[Callable[..., AnalysisQueue]] = None,
    reasoner: Optional[Reasoner] = None,
    mailbox_factory: Optional[MailboxFactory] = None,
    smtp_factory: Optional[SmtpFactory] = None
) -> Components:
    """
    Wire the pipeline.

    The analysis queue's handler needs the proposal service and the service
    needs the queue, so the queue is attached after both exist.
    """
    store = AttachmentStore.from_settings(app_settings)
    orchestrator = AnalysisOrchestrator(app_settings, reasoner)
    notifier = Notifier(app_settings, smtp_factory)
    proposals = ProposalService(orchestrator, notifier)

    handler = partial(analyze_and_record, session_factory, proposals)
    analysis_queue = (queue_factory or create_analysis_queue)(app_settings, handler)
    proposals.analysis_queue = analysis_queue

    reconciler = ResponseReconciler(store, analysis_queue)
    synchronizer = InboxSynchronizer(
        app_settings,
        session_factory,
        reconciler,
        mailbox_factory=mailbox_factory
    )

    return Components(
        settings=app_settings,
        session_factory=session_factory,
        store=store,
        orchestrator=orchestrator,
        notifier=notifier,
        proposals=proposals,
        analysis_queue=analysis_queue,
        reconciler=reconciler,
        synchronizer=synchronizer,
    )
