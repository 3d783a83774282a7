"""Background jobs del monitor."""

from .models import EnrichmentConfig, EnrichmentRunStats, JobState
from .stats_enrichment import StatsEnrichmentJob

__all__ = ["EnrichmentConfig", "EnrichmentRunStats", "JobState", "StatsEnrichmentJob"]
