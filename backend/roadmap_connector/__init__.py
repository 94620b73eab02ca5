"""Roadmap connector: syncs release-roadmap items into a Graph external connection."""
