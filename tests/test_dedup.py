from job_ingest.dedup import DedupIndex, fingerprint, fingerprint_parts
from job_ingest.models import NormalizedJob, RawJobRecord


def _raw(title: str = "Junior Developer", company: str = "Acme", location: str = "Berlin", source: str = "arbeitnow") -> RawJobRecord:
    return RawJobRecord(
        title=title,
        company=company,
        location=location,
        url="https://example.com/jobs/1",
        source=source,
    )


def _job(**kw) -> NormalizedJob:
    raw = _raw(**kw)
    return NormalizedJob.from_raw(raw, is_early_career=True, fingerprint=fingerprint(raw), track="A")


def test_fingerprint_is_stable_and_hex() -> None:
    fp = fingerprint(_raw())
    assert fp == fingerprint(_raw())
    assert len(fp) == 64
    int(fp, 16)


def test_casing_and_whitespace_collapse() -> None:
    a = fingerprint(_raw(title="Junior  Developer ", company="ACME", location=" berlin"))
    b = fingerprint(_raw(title="junior developer", company="acme", location="Berlin"))
    assert a == b


def test_source_does_not_affect_fingerprint() -> None:
    assert fingerprint(_raw(source="arbeitnow")) == fingerprint(_raw(source="remotive"))


def test_location_changes_fingerprint() -> None:
    assert fingerprint(_raw(location="Berlin")) != fingerprint(_raw(location="Munich"))


def test_delimiters_inside_fields_do_not_collide() -> None:
    assert fingerprint_parts("a|b", "c", "Berlin") != fingerprint_parts("a", "b|c", "Berlin")
    assert fingerprint(_raw(company="Acme, Inc", title="Dev")) != fingerprint(_raw(company="Acme", title="Inc, Dev"))


def test_fingerprint_parts_tolerates_missing_values() -> None:
    assert fingerprint_parts(None, "Junior", None) == fingerprint_parts("", "junior", "")


def test_record_seen_and_is_duplicate() -> None:
    index = DedupIndex()
    fp = fingerprint(_raw())
    assert index.is_duplicate(fp) is False
    index.record_seen(fp)
    assert index.is_duplicate(fp) is True
    assert fp in index
    assert len(index) == 1


def test_dedupe_batch_keeps_first_sighting() -> None:
    first = _job(source="arbeitnow")
    second = _job(source="remotive")
    other = _job(title="Graduate Analyst")

    unique, dropped = DedupIndex().dedupe_batch([first, second, other])

    assert dropped == 1
    assert [j.source for j in unique] == ["arbeitnow", "arbeitnow"]
    assert [j.title for j in unique] == ["Junior Developer", "Graduate Analyst"]


def test_dedupe_batch_respects_prior_state() -> None:
    job = _job()
    index = DedupIndex(seen=[job.fingerprint])
    unique, dropped = index.dedupe_batch([job])
    assert unique == []
    assert dropped == 1
