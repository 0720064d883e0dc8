#!/usr/bin/env python3
"""
Run a single dinner from the command line.

    python run_dinner.py -n 5                  # simulated, 10 meals each
    python run_dinner.py -n 5 --verbose        # log every protocol step
    python run_dinner.py -n 5 --network -d 10  # real TCP nodes for 10 s
"""
import argparse
import logging
import sys

from core.errors import TopologyError
from core.properties import check_all


def run_simulated(args) -> dict:
    from simulation import Dinner

    dinner = Dinner(args.num_philosophers, seed=args.seed)
    dinner.run(meals=args.meals, max_time=args.max_time)
    print(f"simulated {dinner.time} ms, meals per philosopher: {dinner.meals()}")
    return check_all(dinner.trace(), args.num_philosophers)


def run_network(args) -> dict:
    from orchestrator.orchestrator import run_dinner

    result = run_dinner(args.num_philosophers, args.duration, seed=args.seed)
    print(f"dined for {args.duration} s, meals per philosopher: {result['meals']}")
    for failure in result['failures']:
        print(f"fatal: {failure}")
    return result['properties']


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Dining philosophers, Chandy/Misra fork protocol",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-n", "--num-philosophers", type=int, default=5,
                        help="the number of philosophers [n >= 2]")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--meals", type=int, default=10,
                        help="simulated run: stop once everybody ate this often")
    parser.add_argument("--max-time", type=int, default=10_000_000,
                        help="simulated run: upper bound in simulated ms")
    parser.add_argument("--network", action="store_true",
                        help="run real TCP nodes on localhost instead of the simulation")
    parser.add_argument("-d", "--duration", type=float, default=5.0,
                        help="network run: seconds to dine")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s [%(name)s] %(message)s')

    if args.num_philosophers < 2:
        print(f"fatal: {args.num_philosophers} isn't a number >= 2")
        return 1

    print(f"Starting a dinner with {args.num_philosophers} philosophers ...")
    try:
        properties = run_network(args) if args.network else run_simulated(args)
    except TopologyError as e:
        print(f"fatal: {e}")
        return 1

    failed = False
    for name, violations in properties.items():
        status = "OK" if not violations else f"{len(violations)} violations"
        print(f"  {name:<18} {status}")
        for violation in violations[:5]:
            print(f"      {violation}")
        failed = failed or bool(violations)
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
