"""
HTTP layer: FastAPI app and job/file persistence.
"""
