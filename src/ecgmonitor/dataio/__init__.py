"""Binary decoders and file helpers.

- :mod:`edf` decodes the multi-channel signal container.
- :mod:`annotations` decodes the companion beat annotation stream.
- :mod:`loader` reads a dataset's bytes off disk for the application.

The decoders are pure functions over ``bytes``; only :mod:`loader` does I/O.
"""
