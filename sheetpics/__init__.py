"""
sheetpics - extract, rename and compress images stored in Excel workbooks.
"""
__version__ = "1.0.0"
