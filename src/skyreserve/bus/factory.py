from __future__ import annotations

import os

from skyreserve.bus.kafka import KafkaBus


def build_transport_bus_from_env() -> KafkaBus | None:
    """External event transport selected by ``SKYRESERVE_BUS_BACKEND``.

    ``memory`` means events stay in process only and no transport is built.
    """
    backend = os.getenv("SKYRESERVE_BUS_BACKEND", "memory").strip().lower()
    if backend == "memory":
        return None
    if backend != "kafka":
        raise ValueError("Unsupported SKYRESERVE_BUS_BACKEND. Use 'memory' or 'kafka'.")
    options = {
        "bootstrap_servers": os.getenv("SKYRESERVE_KAFKA_BOOTSTRAP_SERVERS", "127.0.0.1:9092"),
        "client_id": os.getenv("SKYRESERVE_KAFKA_CLIENT_ID", "skyreserve-producer"),
    }
    prefix = os.getenv("SKYRESERVE_KAFKA_TOPIC_PREFIX", "").strip()
    if prefix:
        options["topic_prefix"] = prefix
    return KafkaBus(**options)
