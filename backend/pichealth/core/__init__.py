"""
PicHealth API — Core Layer
===========================

Pure functions that turn untrusted model text into typed, range-checked
records. Nothing in this package performs I/O.

    extractor            → raw text  → dict
    datetime_normalizer  → date/time text → DateComponents
    normalizer           → dict      → typed record per domain
    validator            → DeviceReading → DeviceReading with implausible fields nulled
"""
