"""Format-specific text recovery used by the TextExtractor.

- pdf_processor.py   -- PyMuPDF layout extraction (high-fidelity path)
- pdf_heuristics.py  -- byte-level literal-string and text-object scans
- markup_processor.py -- regex stripping for RTF and HTML
"""
