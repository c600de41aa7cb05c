from functools import lru_cache

from defense_in_depth.config import settings
from defense_in_depth.core.repository import ReferenceDataStore


@lru_cache(maxsize=1)
def get_store() -> ReferenceDataStore:
    """Loads the reference data once per process."""
    return ReferenceDataStore.load(settings.data_dir)


def parse_id(raw_id: str):
    """Numeric path ids; anything unparseable is treated as an unknown id."""
    try:
        return int(raw_id)
    except ValueError:
        return None
