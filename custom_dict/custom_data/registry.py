"""
Registry of custom sources and the run entry point that loads them.
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

from rich.console import Console

from custom_dict.custom_data.commit import CommitEngine, RunConfig
from custom_dict.custom_data.db_helpers import DictionaryStore
from custom_dict.custom_data.processors.municipality_processor import MunicipalityCsvSource
from custom_dict.custom_data.processors.xml_processor import XmlSource
from custom_dict.custom_data.sources import CustomSource, UnknownSourceError

logger = logging.getLogger(__name__)

# Processed in this order
CUSTOM_SOURCES: Dict[str, Dict] = {
    "extra": {
        "name": "Extra entries",
        "file": "extra.xml",
        "handler": XmlSource,
    },
    "municipality": {
        "name": "Municipalities",
        "file": "municipality.csv",
        "handler": MunicipalityCsvSource,
    },
}


def get_sources(keys: Optional[Iterable[str]] = None, data_dir: Optional[str] = None) -> List[CustomSource]:
    """Instantiate the selected sources (all by default) in registry order."""
    if keys is None:
        selected = list(CUSTOM_SOURCES)
    else:
        requested = [key.strip().lower() for key in keys if key.strip()]
        unknown = [key for key in requested if key not in CUSTOM_SOURCES]
        if unknown:
            raise UnknownSourceError(
                f"Unknown source(s): {', '.join(unknown)}. Available: {', '.join(CUSTOM_SOURCES)}"
            )
        selected = [key for key in CUSTOM_SOURCES if key in requested]

    sources = []
    for key in selected:
        spec = CUSTOM_SOURCES[key]
        sources.append(spec["handler"](source_file=spec["file"], description=spec["name"], data_dir=data_dir))
    return sources


def load_custom_data(
    store: DictionaryStore,
    keys: Optional[Iterable[str]] = None,
    config: Optional[RunConfig] = None,
    console: Optional[Console] = None,
) -> Counter:
    """
    Load and insert each selected source, one after the other.

    All sources share one commit engine, so sequence ids keep increasing
    across sources. Any error aborts the run; the caller owns the
    transaction. Returns the number of each MatchAction taken.
    """
    config = config or RunConfig()
    console = console or Console()
    sources = get_sources(keys, config.data_dir)
    engine = CommitEngine(store, config)

    for source in sources:
        if not config.silent:
            console.print(f"[bold]Loading[/] {source.description} [dim]({source.source_file})[/]")
        source.load()
        before = engine.stats.copy()
        source.insert(engine)
        added = engine.stats - before
        summary = ", ".join(f"{action}: {count}" for action, count in sorted(added.items(), key=lambda item: item[0].value))
        logger.info(f"{source.description}: {summary or 'no records'}")
        if not config.silent:
            console.print(f"  [green]Done[/] {source.description} ({summary or 'no records'})")

    return engine.stats
