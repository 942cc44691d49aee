from .base import GroupMemberships, LookupResult, PassdbMethods  # noqa
from .freenas import FreenasPassdb  # noqa
from .records import GroupMap, SamAccount, SamrDisplayEntry  # noqa
from .search import EnumerationError, SearchSession  # noqa
