"""
Queue Gateway Service package.

The gateway screens inbound requests for an onion-facing site, enforcing:
- Proof-of-wait queueing via a signed, stateless cookie token
- Header fingerprints in place of client addresses
- Sliding-window rate limiting and suspicious-header detection
- Temporary fingerprint bans

Structure:
- app.main: FastAPI service, lifecycle and wiring.
- app.domain: Decision state machine and HTTP middleware.
- app.tokens: Token codec and rotating signing secret.
- app.screening: Fingerprints and suspicion heuristics.
- app.ratelimit: Sliding-window limiter.
- app.bans: Ban registry.
- app.stores: Memory and Redis key-value backends.
- app.rendering: Queue/Blocked pages and stylesheet theming.
"""
