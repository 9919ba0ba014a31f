"""Mermaid Service - FastAPI HTTP layer.

Modules
-------
main
    ``create_app()`` application factory, route handlers and the ``main()``
    CLI entry point.
index_page
    Startup-time resolution of the landing page (bundled or external).
"""
