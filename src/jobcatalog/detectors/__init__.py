"""Detector layer — pluggable text-derived attributes of a posting."""

from jobcatalog.detectors.base import ExperienceClassifier, RegionResolver, TechnologyTagger
from jobcatalog.detectors.experience import PatternExperienceClassifier
from jobcatalog.detectors.region import CityRegionResolver
from jobcatalog.detectors.technology import RegexTechnologyTagger, categorize

__all__ = [
    "CityRegionResolver",
    "ExperienceClassifier",
    "PatternExperienceClassifier",
    "RegexTechnologyTagger",
    "RegionResolver",
    "TechnologyTagger",
    "categorize",
]
