"""HTTP API for marketcache."""
