"""Routewise event routing — attribute-filtered fan-out to destinations.

Each subscription pairs an allow-list or deny-list rule with a
destination.  The Router evaluates every subscription for every event and
delivers to each destination whose rule matches.  Destinations are durable
queues (enqueue-and-return) or active consumers (invoke-and-await); the
router treats both the same way.

A failure in one destination is reported for that destination only.
"""
