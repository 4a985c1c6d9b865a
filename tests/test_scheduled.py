import asyncio
import random

from diesel_leads.analysis import RuleBasedClassifier
from diesel_leads.config import DiscoverySettings
from diesel_leads.exceptions import NotificationError
from diesel_leads.models import SearchResult
from diesel_leads.pipeline import LeadDiscoveryPipeline
from diesel_leads.queries import SCHEDULED_QUERIES
from diesel_leads.scheduled import run_scheduled_discovery


RESULTS = [
    SearchResult(
        title="ABC Sdn Bhd - Diesel Generator Kuantan",
        description="ABC Sdn Bhd runs diesel generator sets in Kuantan.",
    ),
    SearchResult(title="Delta Enterprise", description="lori fleet"),
]


class AnySearch:
    def __init__(self):
        self.queries = []

    async def search(self, query):
        self.queries.append(query)
        return list(RESULTS)


class FakeNotifier:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def send(self, recipient, leads, discovery_type):
        if self.error is not None:
            raise self.error
        self.sent.append((recipient, [lead.company_name for lead in leads]))
        return "email-1"


async def _no_sleep(seconds):
    return None


def _pipeline(search):
    return LeadDiscoveryPipeline(
        search=search,
        classifiers=[RuleBasedClassifier()],
        settings=DiscoverySettings(query_delay=0),
        sleep=_no_sleep,
    )


def test_scheduled_run_emails_strong_leads():
    search = AnySearch()
    notifier = FakeNotifier()
    summary = asyncio.run(
        run_scheduled_discovery(_pipeline(search), notifier, "sales@example.my", rng=random.Random(3))
    )

    assert summary["query"] in SCHEDULED_QUERIES
    assert search.queries == [summary["query"]]
    assert summary["status"] == "ok"
    assert summary["email_id"] == "email-1"
    assert notifier.sent == [("sales@example.my", ["ABC Sdn Bhd"])]
    assert summary["high_priority_leads"] == 1
    assert summary["leads_found"] == 2


def test_notification_failure_does_not_fail_the_run():
    notifier = FakeNotifier(error=NotificationError("rejected"))
    summary = asyncio.run(run_scheduled_discovery(_pipeline(AnySearch()), notifier, "sales@example.my"))
    assert summary["email_id"] is None
    assert summary["leads_found"] == 2


def test_no_recipient_means_no_email():
    notifier = FakeNotifier()
    summary = asyncio.run(run_scheduled_discovery(_pipeline(AnySearch()), notifier, None))
    assert notifier.sent == []
    assert summary["email_id"] is None
