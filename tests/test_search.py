"""Tests for the search orchestrator: tag search, listing and the semantic cascade."""

import asyncio

import pytest

from photoseek.errors import ServiceError, StorageError, ValidationError
from photoseek.search import SearchOrchestrator, SearchStage
from photoseek.store import PhotoStore

from tests.fakes import FakeTaggingService, make_vector


def _seed(store: PhotoStore):
    beach = store.add_photo("beach.jpg", "images/beach.jpg", ["beach", "sunset"], make_vector(1.0, 0.0))
    dusk = store.add_photo("dusk.jpg", "images/dusk.jpg", ["sunset", "city"], make_vector(1.0, 0.05))
    dog = store.add_photo("dog.jpg", "images/dog.jpg", ["dogs", "park"], make_vector(0.0, 1.0))
    return beach, dusk, dog


class TestSemanticSearch:

    def test_vector_hit_returns_photos_without_tags(self, store, test_settings):
        beach, dusk, _ = _seed(store)
        tagger = FakeTaggingService(vectors=[make_vector(1.0, 0.0)])
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("sunny beach"))

        assert outcome.tags is None
        assert [p.photo_id for p in outcome.photos] == [beach.photo_id, dusk.photo_id]
        distances = [p.distance for p in outcome.photos]
        assert distances == sorted(distances)
        assert outcome.stage is SearchStage.DONE
        assert outcome.fallback_reason is None
        assert tagger.query_calls == []

    def test_explicit_max_distance_widens_results(self, store, test_settings):
        _seed(store)
        tagger = FakeTaggingService(vectors=[make_vector(1.0, 0.0)])
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("anything", max_distance=1.0))

        assert len(outcome.photos) == 3
        assert outcome.photos[-1].file_name == "dog.jpg"

    def test_limit_is_clamped(self, store, test_settings):
        _seed(store)
        tagger = FakeTaggingService(vectors=[make_vector(1.0, 0.0)])
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("anything", limit=0, max_distance=1.0))

        assert [p.file_name for p in outcome.photos] == ["beach.jpg"]

    def test_embedding_failure_falls_back_to_tags(self, store, test_settings):
        beach, dusk, _ = _seed(store)
        tagger = FakeTaggingService(
            query_tags=["sunset"],
            embed_error=ServiceError("failed to contact model service"),
        )
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("golden hour"))

        assert outcome.tags == ["sunset"]
        assert [p.photo_id for p in outcome.photos] == [dusk.photo_id, beach.photo_id]
        assert outcome.fallback_reason.startswith("embedding failed")
        assert tagger.query_calls == ["golden hour"]

    def test_embedding_failure_with_empty_fallback_tags_returns_nothing(self, store, test_settings):
        _seed(store)
        tagger = FakeTaggingService(query_tags=[], embed_error=ServiceError("boom"))
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("???"))

        assert outcome.photos == []
        assert outcome.tags == []

    def test_embedding_timeout_falls_back(self, store, test_settings):
        _, _, dog = _seed(store)
        tagger = FakeTaggingService(query_tags=["dogs"], embed_delay=5.0)
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("puppies"))

        assert [p.photo_id for p in outcome.photos] == [dog.photo_id]
        assert outcome.tags == ["dogs"]
        assert outcome.fallback_reason == "embedding timed out after 0.2s"

    def test_zero_vectors_falls_back(self, store, test_settings):
        _seed(store)
        tagger = FakeTaggingService(vectors=[], query_tags=["park"])
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("park"))

        assert outcome.fallback_reason == "embedding returned no vectors"
        assert [p.file_name for p in outcome.photos] == ["dog.jpg"]

    def test_empty_vector_results_fall_back(self, store, test_settings):
        store.add_photo("plain.jpg", "images/plain.jpg", ["mountains"])
        tagger = FakeTaggingService(vectors=[make_vector(1.0)], query_tags=["mountains"])
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("alps"))

        assert outcome.fallback_reason == "no vector matches"
        assert [p.file_name for p in outcome.photos] == ["plain.jpg"]
        assert outcome.tags == ["mountains"]

    def test_fallback_failure_leaves_tags_absent(self, store, test_settings):
        _seed(store)
        tagger = FakeTaggingService(
            embed_error=ServiceError("boom"),
            query_error=ServiceError("model service returned status 500"),
        )
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("beach"))

        assert outcome.tags is None
        assert outcome.photos == []
        assert outcome.stage is SearchStage.DONE

    def test_fallback_timeout_leaves_tags_absent(self, store, test_settings):
        _seed(store)
        tagger = FakeTaggingService(
            embed_error=ServiceError("boom"),
            query_tags=["beach"],
            query_delay=5.0,
        )
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("beach"))

        assert outcome.tags is None
        assert outcome.photos == []

    def test_vector_search_storage_error_falls_back(self, test_engine, test_settings):
        from photoseek.database import build_session_factory

        class BrokenVectorStore(PhotoStore):
            def search_by_embedding(self, query_embedding, limit, max_distance=None):
                raise StorageError("database error during search_by_embedding")

        store = BrokenVectorStore(build_session_factory(test_engine), test_settings)
        store.add_photo("beach.jpg", "images/beach.jpg", ["beach"])
        tagger = FakeTaggingService(query_tags=["beach"])
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.semantic_search("beach"))

        assert outcome.fallback_reason.startswith("vector search failed")
        assert [p.file_name for p in outcome.photos] == ["beach.jpg"]

    @pytest.mark.parametrize("query", ["", "   "])
    def test_empty_query_is_rejected(self, store, test_settings, query):
        tagger = FakeTaggingService()
        search = SearchOrchestrator(tagger, store, test_settings)

        with pytest.raises(ValidationError):
            asyncio.run(search.semantic_search(query))

        assert tagger.embed_calls == []


class TestTagSearch:

    def test_tag_search_matches_overlap(self, store, test_settings):
        beach, dusk, _ = _seed(store)
        tagger = FakeTaggingService(query_tags=["sunset"])
        search = SearchOrchestrator(tagger, store, test_settings)

        outcome = asyncio.run(search.tag_search("  evening sky  "))

        assert tagger.query_calls == ["evening sky"]
        assert outcome.query == "  evening sky  "
        assert outcome.tags == ["sunset"]
        assert [p.photo_id for p in outcome.photos] == [dusk.photo_id, beach.photo_id]

    def test_tag_search_with_no_tags_returns_nothing(self, store, test_settings):
        _seed(store)
        search = SearchOrchestrator(FakeTaggingService(query_tags=[]), store, test_settings)

        outcome = asyncio.run(search.tag_search("hmm"))

        assert outcome.tags == []
        assert outcome.photos == []

    def test_tag_search_propagates_service_errors(self, store, test_settings):
        tagger = FakeTaggingService(query_error=ServiceError("failed to contact model service"))
        search = SearchOrchestrator(tagger, store, test_settings)

        with pytest.raises(ServiceError):
            asyncio.run(search.tag_search("beach"))


class TestListPhotos:

    def test_empty_filter_lists_everything_newest_first(self, store, test_settings):
        beach, dusk, dog = _seed(store)
        search = SearchOrchestrator(FakeTaggingService(), store, test_settings)

        for tags_text in (None, "", " , "):
            photos = asyncio.run(search.list_photos(tags_text))
            assert [p.photo_id for p in photos] == [dog.photo_id, dusk.photo_id, beach.photo_id]

    def test_filter_by_tags(self, store, test_settings):
        _, _, dog = _seed(store)
        search = SearchOrchestrator(FakeTaggingService(), store, test_settings)

        photos = asyncio.run(search.list_photos("park, zebras"))

        assert [p.photo_id for p in photos] == [dog.photo_id]
