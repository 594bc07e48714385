import sys

from .cli import manage
from .errors import DEFAULT_ERROR_EXIT_CODE, PearError


def _main() -> int:
    try:
        return manage(sys.argv[1:])
    except PearError as e:
        print(f"pear: {e}", file=sys.stderr)
        return DEFAULT_ERROR_EXIT_CODE


sys.exit(_main())
