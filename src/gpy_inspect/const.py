ERRORS = {
  "E_IO": "File missing or unreadable",
  "E_HEADER": "File header missing, malformed or corrupted",
  "E_TRUNCATED": "Stream ends inside a record",
  "E_MALFORMED": "Record with an untrustworthy length",
  "E_UNKNOWN_CHECKSUM": "Unknown record checksum mismatch",
  "E_CHECKSUM": "Data records with checksum mismatch were skipped",
  "E_NO_REFERENCE": "Compressed records without a reference were skipped",
}
