"""Repository metadata acquisition

Fetches metalink, repomd.xml and the typed metadata files of the configured
repositories, verifies every one of them by checksum and persists them in
the cache directory.
"""
