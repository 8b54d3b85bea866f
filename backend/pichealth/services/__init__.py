"""
PicHealth API — Services Layer
===============================

What:  Logic between the routes (HTTP) and the model / storage / log store.
How:   Routes get services through the providers in routes/dependencies.py,
       which tests replace via `app.dependency_overrides`.

Service Inventory:
    - LLMService (abstract): prompt (+ optional image) in, text out
    - GeminiService:         LLMService on Google Gemini, with retry and breaker
    - OCRService:            invoice / health-device OCR pipeline
    - InsightService:        health advice and summary generation
    - image_service:         base64 / data-URI decoding and size checks
    - storage_service:       scan photo upload (S3-compatible bucket or disk)
    - ScanLogService:        health_scan / health_summary_log rows
    - prompts:               prompt texts and builders
"""
