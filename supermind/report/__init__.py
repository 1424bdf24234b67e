"""Report generation stages.

visualization  -- pull chart specs out of answer text
renderer       -- dispatch cleaned text to a format (Markdown/HTML/PDF/DOCX)
pdf_renderer   -- two-pass PDF layout and reportlab painting
docx_renderer  -- python-docx output
charts         -- matplotlib PNGs for extracted visualizations
orchestrator   -- one exchange: validate, run flow, extract, render, record
"""
