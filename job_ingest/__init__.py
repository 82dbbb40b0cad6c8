"""Job ingestion package.

The package is structured around the ingestion flow:
- `models.py` defines the records the pipeline owns (raw, normalized, queue items).
- `sources/` contains per-source connectors, each gated by its own `governor.py`.
- `tracks.py` picks the query template for the day.
- `normalize.py` cleans text and decides early-career relevance; `annotate.py` tags kept postings
  with a location type and career path.
- `dedup.py` derives fingerprints and drops batch-local duplicates.
- `queue.py` / `workers.py` hold the durable work queue and its consumers.
- `store.py` keeps jobs keyed by fingerprint; `contracts.py` names what handlers call out to.
- `pipeline.py` ties one run together: fan out over sources, fan in to one enqueue.
- `limiter.py` and `api.py` protect and expose the administrative surface.
"""

__version__ = "0.3.0"
