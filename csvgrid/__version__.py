"""Version information for csvgrid."""

__version__ = "1.1.0"
__version_info__ = (1, 1, 0)

# Version history:
# 1.1.0 - Job files and database sources
#   - YAML job files with CSVGRID_* environment overrides.
#   - SQLAlchemy-backed paged queries.
#   - Merge, archive and manifest operations on export results.
#
# 1.0.0 - Initial release
#   - Streaming export engine with a per-file row cap.
#   - Column shorthand declarations and value formatting.
