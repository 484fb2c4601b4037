"""Trail Explorer - Browse California hiking trails.

A Streamlit application over a bundled, read-only SQLite trail dataset:
- Composable filters compiled to parameterized SQL
- Paged, sorted result lists
- Clustered map markers with a state-machine-driven selection overlay
- Trail details and dataset statistics

Modules:
    core: Dataset access (dataset service, query builder, repository, projection)
    model: Data structures (TrailRecord, FilterCriteria, SortSpec, PageResult, messages)
    ui: Streamlit interface components (state machine, marker manager, pages)

Example:
    from trail_explorer.core import DatasetService, TrailRepository
    from trail_explorer.model import FilterCriteria, SortSpec
"""
