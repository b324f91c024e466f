"""
Unit tests for the processed-identifier set
"""

import logging

from pipeline.identity import ProcessedContractIds
from tests.conftest import make_flagged


class TestProcessedContractIds:
    """Test rebuilding the processed set from the result log"""

    def test_missing_log_is_fresh_run(self, output_file, caplog):
        processed = ProcessedContractIds(output_file)

        with caplog.at_level(logging.INFO):
            count = processed.load()

        assert count == 0
        assert len(processed) == 0
        assert "Starting fresh analysis" in caplog.text
        assert not output_file.exists()

    def test_empty_log_is_fresh_run(self, output_file):
        output_file.write_text("", encoding="utf-8")
        processed = ProcessedContractIds(output_file)

        assert processed.load() == 0

    def test_load_collects_contract_ids(self, output_file, write_log):
        write_log([make_flagged("PO-1"), make_flagged("PO-2", "low"), make_flagged("PO-1")])
        processed = ProcessedContractIds(output_file)

        count = processed.load()

        assert count == 2
        assert processed.contains("PO-1")
        assert "PO-2" in processed
        assert not processed.contains("PO-3")

    def test_corrupt_lines_are_skipped(self, output_file, write_log, caplog):
        write_log([
            make_flagged("PO-1"),
            '{"contract_id": "PO-2", "risk_level": ',
            "not json at all",
            {"vendor_name": "no id"},
            '["PO-4"]',
            "",
            make_flagged("PO-5", "Medium"),
        ])
        processed = ProcessedContractIds(output_file)

        with caplog.at_level(logging.WARNING):
            processed.load()

        assert set(processed) == {"PO-1", "PO-5"}
        assert processed.skipped_lines == 4
        assert "Skipping corrupt line 2" in caplog.text

    def test_invalid_fields_still_mark_contract_processed(self, output_file, write_log, caplog):
        write_log([
            make_flagged("PO-1", "critical"),
            make_flagged("PO-2", risk_factors={"financial_issues": {"nested": "dict"}}),
            {"contract_id": " PO-3 ", "risk_level": None},
        ])
        processed = ProcessedContractIds(output_file)

        with caplog.at_level(logging.WARNING):
            processed.load()

        assert set(processed) == {"PO-1", "PO-2", "PO-3"}
        assert processed.skipped_lines == 0
        assert "keeping contract_id PO-1" in caplog.text

    def test_add_is_idempotent(self, output_file):
        processed = ProcessedContractIds(output_file)

        processed.add("PO-1")
        processed.add("PO-1")
        processed.update(["PO-1", "PO-2"])

        assert len(processed) == 2

    def test_load_keeps_ids_added_before(self, output_file, write_log):
        write_log([make_flagged("PO-1")])
        processed = ProcessedContractIds(output_file)
        processed.add("PO-0")

        processed.load()

        assert set(processed) == {"PO-0", "PO-1"}
