"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram

CONFIDENCE_BUCKETS = [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]

documents_processed_total = Counter(
    "trustrag_documents_processed_total",
    "Documents that reached a final status", ["status"])
pipeline_step_failures_total = Counter(
    "trustrag_pipeline_step_failures_total",
    "Pipeline steps that exhausted their attempts", ["step"])
parse_confidence = Histogram(
    "trustrag_parse_confidence", "Parse confidence of processed documents",
    buckets=CONFIDENCE_BUCKETS)
document_processing_duration = Histogram(
    "trustrag_document_processing_duration_seconds", "Document pipeline duration",
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0])
documents_swept_total = Counter(
    "trustrag_documents_swept_total",
    "Stuck documents marked failed by the sweep", ["status"])

retrieval_latency_seconds = Histogram(
    "trustrag_retrieval_latency_seconds", "Retrieval latency in seconds",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0])
retrieval_degraded_total = Counter(
    "trustrag_retrieval_degraded_total",
    "Retrievals that fell back to empty context", ["reason"])

drafts_total = Counter(
    "trustrag_drafts_total", "Generated drafts by trust tier", ["tier"])
generation_confidence = Histogram(
    "trustrag_generation_confidence", "Generation confidence of drafts",
    buckets=CONFIDENCE_BUCKETS)
generation_errors_total = Counter(
    "trustrag_generation_errors_total", "Draft requests failed by the provider")
