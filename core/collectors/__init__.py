# Importing the modules registers their sources.
from core.collectors import github_collector, static_collector  # noqa: F401
