"""Unit tests for the RAG data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from coach_rag.models.rag import (
    AccessTier,
    Attribution,
    DocumentChunk,
    DocumentSource,
    EmbeddingBatchResult,
    EmbeddingOutcome,
    GrantReport,
    IngestionOptions,
    IngestionResult,
    ProcessStatus,
    SearchResult,
)


def _make_chunk(**overrides) -> DocumentChunk:
    fields = {
        "source_id": "src-1",
        "title": "Guide - Part 1/2",
        "content": "Eat meat.",
        "chunk_index": 0,
        "total_chunks": 2,
        "embedding": [0.1, 0.2],
    }
    fields.update(overrides)
    return DocumentChunk(**fields)


class TestProcessStatus:
    @pytest.mark.parametrize(
        ("start", "target", "allowed"),
        [
            (ProcessStatus.PENDING, ProcessStatus.PROCESSING, True),
            (ProcessStatus.PROCESSING, ProcessStatus.COMPLETED, True),
            (ProcessStatus.PROCESSING, ProcessStatus.FAILED, True),
            (ProcessStatus.PENDING, ProcessStatus.COMPLETED, False),
            (ProcessStatus.COMPLETED, ProcessStatus.FAILED, False),
            (ProcessStatus.FAILED, ProcessStatus.PROCESSING, False),
        ],
    )
    def test_transitions(self, start: ProcessStatus, target: ProcessStatus, allowed: bool) -> None:
        assert start.can_transition(target) is allowed


class TestDocumentChunk:
    def test_valid_chunk(self) -> None:
        chunk = _make_chunk()
        assert chunk.id is None

    def test_index_must_be_below_total(self) -> None:
        with pytest.raises(ValidationError):
            _make_chunk(chunk_index=2, total_chunks=2)

    def test_empty_embedding_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _make_chunk(embedding=[])

    def test_frozen(self) -> None:
        chunk = _make_chunk()
        with pytest.raises(ValidationError):
            chunk.content = "changed"  # type: ignore[misc]


class TestDefaults:
    def test_attribution_defaults(self) -> None:
        attribution = Attribution()
        assert attribution.supplied_by == "Internal Team"
        assert attribution.supplier_type == "internal_team"
        assert attribution.license_type == "proprietary"
        assert attribution.copyright_holder == "NoiseMeld"

    def test_options_require_a_coach(self) -> None:
        with pytest.raises(ValidationError):
            IngestionOptions(coaches=[])

    def test_options_defaults(self) -> None:
        options = IngestionOptions(coaches=["keto"])
        assert options.tier == AccessTier.FREE
        assert options.skip_duplicates is True

    def test_score_range(self) -> None:
        with pytest.raises(ValidationError):
            SearchResult(chunk_id="x", score=1.5)


class TestResults:
    def test_batch_result_views(self) -> None:
        result = EmbeddingBatchResult(
            outcomes=[
                EmbeddingOutcome(text="a", vector=[1.0]),
                EmbeddingOutcome(text="b", error="boom"),
                EmbeddingOutcome(text="c", vector=[2.0]),
            ]
        )

        assert result.vectors == [[1.0], None, [2.0]]
        assert result.failures == [(1, "boom")]
        assert result.success_count == 2

    def test_final_status(self) -> None:
        assert IngestionResult(error_count=0).final_status == ProcessStatus.COMPLETED
        assert IngestionResult(error_count=2).final_status == ProcessStatus.FAILED

    def test_grant_report_ok(self) -> None:
        assert GrantReport(document_id="d", granted=["keto"]).ok
        assert not GrantReport(document_id="d", failed={"keto": "x"}).ok


class TestDocumentSourceNullColumns:
    def test_null_columns_fall_back_to_defaults(self) -> None:
        source = DocumentSource.model_validate(
            {
                "id": "src-1",
                "title": "Old Talk",
                "source_type": "youtube",
                "file_size_bytes": None,
                "supplied_by": None,
                "supplier_type": None,
                "license_type": None,
                "copyright_holder": None,
                "metadata": None,
            }
        )

        assert source.file_size_bytes == 0
        assert source.supplied_by == "Internal Team"
        assert source.supplier_type == "internal_team"
        assert source.license_type == "proprietary"
        assert source.copyright_holder == "NoiseMeld"
        assert source.metadata == {}

    def test_null_title_still_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DocumentSource.model_validate({"id": "src-1", "title": None, "source_type": "md"})
