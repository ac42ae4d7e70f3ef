import os
import warnings

warnings.filterwarnings("ignore", category=DeprecationWarning)

# Vendor wrappers stay on their stubs unless a test opts out explicitly
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("NOTIFY_ON_GO_LIVE", "false")

# Import shared fixtures so they are available to all tests
from tests.fixtures.live_fakes import *  # noqa: E402, F403
from tests.fixtures.mongo_fixtures import *  # noqa: E402, F403
