"""
Layout Translator core: errors, scheduling and the translation pipeline.
"""
