"""
Job Store Test Suite.

- Codec round-trips and variant dispatch
- Lifecycle table
- Acquisition, including concurrent nodes and stale index hits
- Firing and completion protocol
- HTTP document store client against a mock transport
"""
