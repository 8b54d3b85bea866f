"""
PicHealth API — Routes Package
===============================

Route Inventory:
    - ocr.py:       POST /api/ocr-ai, /api/ocr-health            (first-party)
                    POST /api/v1/ocr-ai, /api/v1/ocr-health      (keyed)
    - insights.py:  POST /api/v1/health-advice                   (keyed)
                    POST /api/v1/health-summary                  (keyed)
    - health.py:    GET  /health
    - dependencies.py: API key gate, rate limit, service providers

Routes stay thin: decode the request, call a service, return its model.
Errors are raised as PicHealthError subclasses and formatted by the global
handlers in main.py.
"""
