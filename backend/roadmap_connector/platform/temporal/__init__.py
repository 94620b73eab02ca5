"""Temporal scheduling: workflows, activities, schedules and the worker."""
