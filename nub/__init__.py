"""
nub - scheduled website digest.

Periodically fetches a list of web pages, caches their raw content,
summarizes each page through an LLM endpoint and stores the summaries
for later viewing. An optional topic filter extracts focused excerpts
per source and across all sources of a run.

Main entry point is the CLI via the `nub` command.

Example:
    $ nub add-source https://news.ycombinator.com
    $ nub run
    $ nub start
"""

__all__ = [
    "__version__",
    "ContentCache",
    "SummaryStore",
    "SourcePipeline",
    "ProcessSupervisor",
    "run_once",
]
__version__ = "0.1.0"

from .cache import ContentCache
from .daemon import ProcessSupervisor
from .runner import SourcePipeline, run_once
from .store import SummaryStore
