"""Voice socket frame handlers.

Each module registers its functions with ``@router.handler(<type>)``; the
router imports the modules listed in ``HANDLER_MODULES`` on first use.
"""
