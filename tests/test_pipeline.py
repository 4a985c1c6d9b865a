import asyncio

import httpx

from diesel_leads.analysis import ClassificationOutcome, RuleBasedClassifier
from diesel_leads.config import DiscoverySettings, MapsSettings
from diesel_leads.exceptions import ClassificationError, GeocodingError, SearchError
from diesel_leads.geocode import GoogleGeocoder
from diesel_leads.models import DiscoveryRequest, GeocodeResult, LeadCandidate, LeadSource, RunStatus, SearchResult
from diesel_leads.pipeline import NO_QUALIFIED_MESSAGE, NO_RESULTS_MESSAGE, LeadDiscoveryPipeline


ABC = SearchResult(
    title="ABC Sdn Bhd - Diesel Generator Kuantan",
    description="ABC Sdn Bhd runs diesel generator sets for industrial clients in Kuantan.",
    url="https://abc.example.my",
)
RESORT = SearchResult(
    title="ABC Resort Kuantan",
    description="Beachfront resort with diesel generator backup.",
    url="https://resort.example.my",
)


class FakeSearch:
    def __init__(self, responses):
        self.responses = responses
        self.queries = []

    async def search(self, query):
        self.queries.append(query)
        response = self.responses.get(query, [])
        if isinstance(response, Exception):
            raise response
        return list(response)


class FixedClassifier:
    def __init__(self, name, candidates=None, error=None, threshold=60):
        self.name = name
        self.candidates = candidates or []
        self.error = error
        self.threshold = threshold
        self.calls = 0

    async def classify(self, results, request):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ClassificationOutcome(classifier=self.name, candidates=list(self.candidates), threshold=self.threshold)


class FakeGeocoder:
    def __init__(self, result):
        self.result = result
        self.queries = []

    async def geocode(self, query):
        self.queries.append(query)
        return self.result


async def _no_sleep(seconds):
    return None


def _pipeline(responses, classifiers=None, geocoder=None):
    search = FakeSearch(responses)
    pipeline = LeadDiscoveryPipeline(
        search=search,
        classifiers=classifiers if classifiers is not None else [RuleBasedClassifier()],
        geocoder=geocoder,
        settings=DiscoverySettings(query_delay=0),
        sleep=_no_sleep,
    )
    return pipeline, search


def _run(pipeline, **kwargs):
    return asyncio.run(pipeline.run(DiscoveryRequest(**kwargs)))


def test_generator_company_in_kuantan_qualifies():
    pipeline, _ = _pipeline({"q": [ABC]})
    run = _run(pipeline, queries=["q"], use_ai=False)

    assert run.status is RunStatus.OK
    assert len(run.candidates) == 1
    lead = run.candidates[0]
    assert lead.company_name == "ABC Sdn Bhd"
    assert lead.state == "Pahang"
    assert lead.region == "Pantai Timur"
    assert lead.estimated_usage >= 12000
    assert lead.quality_score >= 40


def test_committed_company_is_not_rediscovered():
    pipeline, _ = _pipeline({"q": [ABC]})
    run = _run(pipeline, queries=["q"], existing_companies=["ABC Sdn Bhd"])
    assert run.status is RunStatus.NO_QUALIFIED
    assert run.message == NO_QUALIFIED_MESSAGE
    assert run.candidates == []


def test_unregistered_name_is_dropped():
    pipeline, _ = _pipeline({"q": [RESORT]})
    run = _run(pipeline, queries=["q"])
    assert run.status is RunStatus.NO_QUALIFIED
    assert run.raw_result_count == 1


def test_failing_query_is_skipped():
    pipeline, search = _pipeline({"bad": SearchError("timeout"), "good": [ABC]})
    run = _run(pipeline, queries=["bad", "good"])
    assert search.queries == ["bad", "good"]
    assert run.failed_queries == ["bad"]
    assert [c.company_name for c in run.candidates] == ["ABC Sdn Bhd"]


def test_no_results_short_circuits():
    pipeline, _ = _pipeline({"q": SearchError("down")})
    run = _run(pipeline, queries=["q"])
    assert run.status is RunStatus.NO_RESULTS
    assert run.message == NO_RESULTS_MESSAGE


def test_minimum_order_boundary():
    at_floor = LeadCandidate(company_name="Floor Sdn Bhd", estimated_usage=5460, quality_score=80)
    below = LeadCandidate(company_name="Below Sdn Bhd", estimated_usage=5459, quality_score=80)
    ai = FixedClassifier("ai", candidates=[at_floor, below])
    pipeline, _ = _pipeline({"q": [ABC]}, classifiers=[ai, RuleBasedClassifier()])
    run = _run(pipeline, queries=["q"])
    assert [c.company_name for c in run.candidates] == ["Floor Sdn Bhd"]
    assert run.classifier == "ai"


def test_ai_failure_falls_back_to_rules():
    for error in (ClassificationError("bad json"), RuntimeError("provider exploded")):
        ai = FixedClassifier("ai", error=error)
        pipeline, _ = _pipeline({"q": [ABC]}, classifiers=[ai, RuleBasedClassifier()])
        run = _run(pipeline, queries=["q"])
        assert run.classifier == "rules"
        assert [c.company_name for c in run.candidates] == ["ABC Sdn Bhd"]


def test_empty_ai_result_falls_back_to_rules():
    pipeline, _ = _pipeline({"q": [ABC]}, classifiers=[FixedClassifier("ai"), RuleBasedClassifier()])
    run = _run(pipeline, queries=["q"])
    assert run.classifier == "rules"


def test_rules_only_request_skips_ai():
    ai = FixedClassifier("ai")
    pipeline, _ = _pipeline({"q": [ABC]}, classifiers=[ai, RuleBasedClassifier()])
    _run(pipeline, queries=["q"], use_ai=False)
    assert ai.calls == 0


def test_ai_names_without_registration_marker_are_dropped():
    lead = LeadCandidate(company_name="Kuantan Logistics", estimated_usage=10000, quality_score=90, source=LeadSource.AI)
    pipeline, _ = _pipeline({"q": [ABC]}, classifiers=[FixedClassifier("ai", candidates=[lead]), RuleBasedClassifier()])
    run = _run(pipeline, queries=["q"])
    assert run.candidates == []


def test_city_overrides_suggested_state():
    lead = LeadCandidate(
        company_name="Gebeng Marine Sdn Bhd",
        state="Terengganu",
        location="Kuantan",
        estimated_usage=20000,
        quality_score=85,
    )
    pipeline, _ = _pipeline({"q": [ABC]}, classifiers=[FixedClassifier("ai", candidates=[lead]), RuleBasedClassifier()])
    run = _run(pipeline, queries=["q"])
    assert run.candidates[0].state == "Pahang"
    assert run.candidates[0].region == "Pantai Timur"


def test_geocoding_refines_location_once_per_query():
    abc = LeadCandidate(company_name="ABC Sdn Bhd", estimated_usage=12000, quality_score=70)
    delta = LeadCandidate(company_name="Delta Berhad", estimated_usage=12000, quality_score=75)
    geocoder = FakeGeocoder(GeocodeResult(latitude=5.3, longitude=103.1, state="Terengganu", city="Kuala Terengganu"))
    pipeline, _ = _pipeline(
        {"q": [ABC]},
        classifiers=[FixedClassifier("ai", candidates=[abc, delta]), RuleBasedClassifier()],
        geocoder=geocoder,
    )
    run = _run(pipeline, queries=["q"])
    assert len(geocoder.queries) == 2
    assert [c.company_name for c in run.candidates] == ["Delta Berhad", "ABC Sdn Bhd"]
    assert all(c.geocoded and c.state == "Terengganu" for c in run.candidates)


def test_results_sorted_and_capped():
    leads = [
        LeadCandidate(company_name=f"Company {name} Sdn Bhd", estimated_usage=9000, quality_score=score)
        for name, score in zip(["Alpha", "Bravo", "Charlie"], [65, 95, 80])
    ]
    search = FakeSearch({"q": [ABC]})
    pipeline = LeadDiscoveryPipeline(
        search=search,
        classifiers=[FixedClassifier("ai", candidates=leads), RuleBasedClassifier()],
        settings=DiscoverySettings(query_delay=0, max_leads=2),
        sleep=_no_sleep,
    )
    run = _run(pipeline, queries=["q"])
    assert [c.quality_score for c in run.candidates] == [95, 80]


def test_generated_queries_are_remembered():
    pipeline, search = _pipeline({})
    _run(pipeline, region="Utara")
    assert len(search.queries) == 6
    assert set(pipeline.history.recent("Utara")) == set(search.queries)


class FailingGeocoder:
    def __init__(self, error):
        self.error = error

    async def geocode(self, query):
        raise self.error


def _kuantan_lead():
    return LeadCandidate(company_name="Gebeng Marine Sdn Bhd", location="Kuantan", estimated_usage=20000, quality_score=85)


def test_geocoder_errors_keep_text_location():
    for error in (GeocodingError("quota"), AttributeError("bad payload")):
        pipeline, _ = _pipeline(
            {"q": [ABC]},
            classifiers=[FixedClassifier("ai", candidates=[_kuantan_lead()]), RuleBasedClassifier()],
            geocoder=FailingGeocoder(error),
        )
        run = _run(pipeline, queries=["q"])
        lead = run.candidates[0]
        assert (lead.state, lead.region, lead.geocoded) == ("Pahang", "Pantai Timur", False)


def test_malformed_geocode_responses_do_not_abort_the_run():
    for payload in ({"status": "OK", "results": [None]}, {"status": "OK", "results": [{"geometry": "x"}]}):

        async def go():
            transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
            async with httpx.AsyncClient(transport=transport) as client:
                pipeline = LeadDiscoveryPipeline(
                    search=FakeSearch({"q": [ABC]}),
                    classifiers=[FixedClassifier("ai", candidates=[_kuantan_lead()]), RuleBasedClassifier()],
                    geocoder=GoogleGeocoder(MapsSettings(api_key="maps"), client=client),
                    settings=DiscoverySettings(query_delay=0),
                    sleep=_no_sleep,
                )
                return await pipeline.run(DiscoveryRequest(queries=["q"]))

        run = asyncio.run(go())
        assert run.status is RunStatus.OK
        assert run.candidates[0].state == "Pahang"
        assert not run.candidates[0].geocoded
