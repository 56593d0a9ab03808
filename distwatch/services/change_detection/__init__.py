"""
Change Detection Services Package

Snapshot change detection with:
- Structural tree diff
- Content hashing and verification
- Added/removed file analysis
- Report rendering
"""

from distwatch.services.change_detection.change_set import ChangeSetAnalyzer
from distwatch.services.change_detection.hash_indexer import HashIndexer, compare_indexes
from distwatch.services.change_detection.report import ComparisonReport, combine_classification
from distwatch.services.change_detection.service import ChangeDetectionService, DetectionOutcome
from distwatch.services.change_detection.structural_comparator import StructuralComparator

__all__ = [
    'ChangeSetAnalyzer',
    'HashIndexer',
    'compare_indexes',
    'ComparisonReport',
    'combine_classification',
    'ChangeDetectionService',
    'DetectionOutcome',
    'StructuralComparator'
]
