"""
rental_batch -- Scheduled monthly revenue recalculation.

A pure cron evaluator, a job that recalculates the previous and current
month with a single delayed retry on failure, and an in-process polling
scheduler.

Architecture:
    rental_batch/ is a top-level package.  Nothing in rental_kernel/ or
    rental_modules/ imports from rental_batch.
"""
