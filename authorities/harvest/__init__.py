"""Harvest module - ingestion of RDF and TSV vocabularies into authorities."""

from authorities.harvest.harvester import Harvester
from authorities.harvest.jobs import HarvestJob, HarvestRunner, JobStatus

__all__ = [
    "Harvester",
    "HarvestJob",
    "HarvestRunner",
    "JobStatus",
]
