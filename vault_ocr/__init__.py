"""
Vault OCR annotator: watches an Obsidian vault for new images, reads their
text with Clova OCR, asks Claude for a tidy annotation bundle (markdown
text, one-line summary, filename suggestion, category tag), and tucks it
into a hidden block beneath every note embed of the image.
"""
