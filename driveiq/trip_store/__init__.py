"""Trip persistence: REST trip service client, local fallback store, facade."""

from .local import LocalTripStore  # noqa: F401
from .rest import RestTripStore  # noqa: F401
from .session import create_default_session  # noqa: F401
from .store import LOCAL_ID_PREFIX, TripStore, is_local_id  # noqa: F401
