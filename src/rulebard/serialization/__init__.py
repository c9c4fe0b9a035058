""" Binary persistence for rulesets and sessions. """

from .util import FormatError, UnsupportedVersion
from .ruleset import FORMAT_VERSION, serialize, deserialize, load_ruleset, save_ruleset, load_ruleset_file
from .session import session_to_bytes, session_from_bytes
