"""
Rental engines built on ``rental_kernel``.

* ``availability`` -- interval-overlap conflict detection and next-free search.
* ``revenue``      -- prorated monthly revenue, projections and analytics.
* ``agreements``   -- agreement creation, trial cancellation and eligibility.
"""
