"""Print the default save location(s) of an installed game"""

import argparse
import json
import sys

from savepath import settings
from savepath.exceptions import UnknownBackendError
from savepath.game import Backend, CloudSaveLocation
from savepath.resolver import get_default_save_path
from savepath.util.log import enable_debug


def parse_location(value: str) -> CloudSaveLocation:
    name, separator, path = value.partition("=")
    if not separator or not name:
        raise argparse.ArgumentTypeError("Locations must be given as NAME=PATH")
    return CloudSaveLocation(name=name, location=path)


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="savepath", description=__doc__)
    parser.add_argument("runner", choices=[backend.value for backend in Backend])
    parser.add_argument("appid")
    parser.add_argument(
        "--location",
        action="append",
        type=parse_location,
        default=[],
        metavar="NAME=PATH",
        help="GOG save location whose path is already known",
    )
    parser.add_argument("--json", action="store_true", help="Output the result as JSON")
    parser.add_argument("-d", "--debug", action="store_true", help="Show debug messages")
    parser.add_argument("--version", action="version", version="%(prog)s " + settings.VERSION)
    return parser


def main(argv=None) -> int:
    args = get_parser().parse_args(argv)
    if args.debug or settings.read_bool_setting("debug"):
        enable_debug()
    try:
        result = get_default_save_path(args.appid, args.runner, args.location)
    except UnknownBackendError as ex:
        print(ex.message, file=sys.stderr)
        return 2

    if isinstance(result, str):
        if args.json:
            print(json.dumps({"save_path": result}))
        elif result:
            print(result)
        return 0 if result else 1

    if args.json:
        print(json.dumps([{"name": location.name, "location": location.location} for location in result], indent=2))
    else:
        for location in result:
            print("%s: %s" % (location.name, location.location))
    return 0 if result else 1


if __name__ == "__main__":
    sys.exit(main())
