# src/virtkube/worker/hashing.py
"""
Content hash of a worker pool, embedded in machine class names. Every field
of the pool spec is covered, together with the effective kubernetes version
and any additional tokens (network data), so that any declared change yields
a new machine class.
"""

import hashlib
import json
from typing import List

from ..core.config import config
from ..models.shoot import Cluster
from ..models.worker import WorkerPool


def compute_sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _hash_inputs(pool: WorkerPool, cluster: Cluster) -> List[str]:
    kubernetes_version = pool.kubernetes_version or cluster.shoot.spec.kubernetes.version
    # Canonical form: camelCase keys, sorted, no whitespace
    canonical_pool = json.dumps(pool.to_dict(), sort_keys=True, separators=(",", ":"))
    return [kubernetes_version, canonical_pool]


def worker_pool_hash(pool: WorkerPool, cluster: Cluster, *additional_data: str) -> str:
    """
    Returns a short, deterministic hash of the pool spec, the cluster context
    and any additional tokens (e.g. network data).
    """
    result = ""
    for value in _hash_inputs(pool, cluster):
        result += compute_sha256_hex(value.encode("utf-8"))
    for value in additional_data:
        result += compute_sha256_hex(value.encode("utf-8"))
    return compute_sha256_hex(result.encode("utf-8"))[: config.POOL_HASH_LENGTH]
