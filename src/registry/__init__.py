"""MOD portal client, release models and downloader."""
