import logging
import sys
from argparse import ArgumentParser

from .BalancedIndex import ORDERS, BalancedIndex, InvalidArgument


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="AVLIndex", description="Build a balanced index and query it.")
    parser.add_argument("values", nargs="*", type=int, help="values to insert, in order")
    parser.add_argument("--delete", nargs="+", type=int, default=[], metavar="V", help="values to delete afterwards")
    parser.add_argument("--kth", type=int, help="print the k-th smallest value")
    parser.add_argument("--count-below", type=int, metavar="X", help="print how many values are smaller than X")
    parser.add_argument("--count-above", type=int, metavar="X", help="print how many values are greater than X")
    parser.add_argument("--order", choices=ORDERS, default="in", help="traversal order to print")
    parser.add_argument("--verbose", action="store_true", help="log every insert and delete")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    index = BalancedIndex()
    for value in args.values:
        index.insert(value)
    for value in args.delete:
        index.delete(value)

    print(index.render())
    print(f"{args.order}order: " + " ".join(str(v) for v in index.traversal(args.order)))
    print(f"count: {len(index)} height: {index.height()}")

    if args.count_below is not None:
        print(f"smaller than {args.count_below}: {index.count_smaller_than(args.count_below)}")
    if args.count_above is not None:
        print(f"greater than {args.count_above}: {index.count_greater_than(args.count_above)}")

    if args.kth is not None:
        try:
            print(f"k={args.kth}: {index.k_smallest(args.kth)}")
        except InvalidArgument as e:
            print(f"error: {e}", file=sys.stderr)
            return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
