SCHEMA_SQL = r"""
-- Documents (products, sales, customers), one JSON body per row
CREATE TABLE IF NOT EXISTS documents (
  collection TEXT NOT NULL,              -- products / sales / customers
  doc_id TEXT NOT NULL,
  body TEXT NOT NULL,                    -- JSON object
  updated_at TEXT NOT NULL DEFAULT '',   -- last write time (UTC ISO)
  PRIMARY KEY (collection, doc_id)
);

CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents (collection);
"""
