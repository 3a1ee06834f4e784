"""Repository registry package.

- repositories.py: repository endpoints and the ordered registry of them
- layout.py: default and legacy repository path layouts
- fetcher.py: artifact fetcher backed by the local repository cache
"""
