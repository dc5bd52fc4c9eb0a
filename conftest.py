# Ensure project root is on sys.path so 'aad_token_provider' and 'tests' are importable
# when running pytest from environments that don't automatically include it.
import sys
from pathlib import Path

ROOT = Path(__file__).parent.resolve()
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
