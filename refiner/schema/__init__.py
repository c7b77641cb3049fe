"""Schema package exports."""

from .refinement import CorpusEntry, RefinementJob, SourceDocument, TaxonomyTag

__all__ = ["CorpusEntry", "RefinementJob", "SourceDocument", "TaxonomyTag"]
