#!/usr/bin/env python3
"""Drive one replica set to convergence (programmatic example).

This plays the part of the external scheduler:

* load settings from `.env`
* register a replica set in the local JSON resource store (if missing)
* call `Reconciler.reconcile` repeatedly, waiting as each outcome asks

The example stops after `--max-ticks` calls. Nothing marks pods ready here, so
a fresh deployment waits at the stateful set step until something updates its
`ready_replicas` status.
"""

from __future__ import annotations

import argparse
import time
from typing import Sequence

from replicaset_reconciler import Reconciler, ReconcilerConfig
from replicaset_reconciler.replicaset import ReplicaSet, ReplicaSetSpec
from replicaset_reconciler.resources import AlreadyExistsError


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile a replica set (programmatic example).")
    parser.add_argument("--namespace", default="default", help="Replica set namespace")
    parser.add_argument("--name", required=True, help="Replica set name")
    parser.add_argument("--members", type=int, default=3, help="Desired member count")
    parser.add_argument("--version", default="6.0", help="Desired database version")
    parser.add_argument("--max-ticks", type=int, default=20, help="Stop after this many ticks")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    config = ReconcilerConfig()
    config.setup_logging()
    reconciler = Reconciler(config)

    rs = ReplicaSet(
        namespace=args.namespace,
        name=args.name,
        spec=ReplicaSetSpec(members=args.members, version=args.version),
    )
    try:
        reconciler.resources.create(rs.to_object())
    except AlreadyExistsError:
        print(f"Replica set {args.namespace}/{args.name} already registered")

    for tick in range(1, args.max_ticks + 1):
        outcome = reconciler.reconcile(args.namespace, args.name)
        if outcome.is_done:
            print(f"Converged after {tick} ticks")
            return 0
        time.sleep(outcome.requeue_after)

    print(f"Not converged after {args.max_ticks} ticks; resume by running again")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
