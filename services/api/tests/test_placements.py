"""
Tests for the placement store and editor sessions.

Run with: pytest tests/test_placements.py -v
"""
import pytest

from core.coordinates import PageGeometry, Rect, SurfaceGeometry
from core.editor_sessions import EditorSessionRegistry
from core.errors import NotFoundError, ValidationError
from core.placements import PlacementStatus, PlacementStore

LETTER = PageGeometry(612, 792)


class TestPlacementStore:
    """Tests for add / update / remove / activate / for_page / clear."""

    def test_add_uses_defaults_and_activates(self):
        """A new placement is 150x50 at (50, 50) and becomes active."""
        store = PlacementStore(page_count=3)
        p = store.add(2, "bob@example.com", "Bob")
        assert (p.x, p.y, p.width, p.height) == (50, 50, 150, 50)
        assert p.page == 2
        assert p.status == PlacementStatus.PLACED
        assert store.active is p

    def test_add_rejects_page_out_of_range(self):
        store = PlacementStore(page_count=3)
        with pytest.raises(ValidationError):
            store.add(0, "bob@example.com")
        with pytest.raises(ValidationError):
            store.add(4, "bob@example.com")
        assert len(store) == 0

    def test_add_then_remove_empties_store(self):
        """Removing the active placement also clears the selection."""
        store = PlacementStore(page_count=1)
        p = store.add(1, "bob@example.com")
        store.remove(p.placement_id)
        assert len(store) == 0
        assert store.active is None

    def test_ids_are_stable_across_removal(self):
        """Removing one placement never re-targets another's id."""
        store = PlacementStore(page_count=1)
        first = store.add(1, "a@example.com")
        second = store.add(1, "b@example.com")
        store.remove(first.placement_id)
        assert store.get(second.placement_id) is second
        assert store.position(second.placement_id) == 0
        assert store.get(first.placement_id) is None

    def test_update_unknown_id_is_noop(self):
        store = PlacementStore(page_count=1)
        p = store.add(1, "bob@example.com")
        store.update("p-doesnotexist", {"x": 300})
        assert p.x == 50
        assert len(store) == 1

    def test_update_merges_and_clamps(self):
        """With bounds the result is clamped into the visible page."""
        store = PlacementStore(page_count=1)
        p = store.add(1, "bob@example.com")
        store.update(p.placement_id, {"x": 1000, "y": -5, "signer_name": "Bobby"}, bounds=SurfaceGeometry(612, 792))
        assert (p.x, p.y) == (462, 0)
        assert p.signer_name == "Bobby"

    def test_update_rejects_unknown_fields_and_bad_size(self):
        store = PlacementStore(page_count=2)
        p = store.add(1, "bob@example.com")
        with pytest.raises(ValidationError):
            store.update(p.placement_id, {"page": 2})
        with pytest.raises(ValidationError):
            store.update(p.placement_id, {"width": 0})

    def test_rejected_update_leaves_placement_untouched(self):
        store = PlacementStore(page_count=1)
        p = store.add(1, "bob@example.com", "Bob")
        with pytest.raises(ValidationError):
            store.update(p.placement_id, {"x": 999, "width": -5, "signer_name": "Robert"})
        assert (p.x, p.y, p.width, p.height) == (50, 50, 150, 50)
        assert p.signer_name == "Bob"

    def test_finalized_placements_are_frozen(self):
        """After finalize_all, updates are ignored."""
        store = PlacementStore(page_count=1)
        p = store.add(1, "bob@example.com")
        assert store.finalize_all() == 1
        store.update(p.placement_id, {"x": 200})
        assert p.x == 50
        assert p.status == PlacementStatus.FINALIZED
        assert store.placed() == []
        assert store.finalize_all() == 0

    def test_finalize_records_only_touches_committed_rows(self):
        """Saved rows that were committed finalize; unsaved placements are dropped."""
        store = PlacementStore(page_count=1)
        committed = store.add(1, "a@example.com")
        committed.record_id = "sig-1"
        late = store.add(1, "b@example.com")
        late.record_id = "sig-2"
        unsaved = store.add(1, "c@example.com")

        assert store.finalize_records(["sig-1"]) == 1
        assert committed.status == PlacementStatus.FINALIZED
        assert late.status == PlacementStatus.PLACED
        assert store.get(unsaved.placement_id) is None
        assert store.active is None

    def test_for_page_filters_in_order(self):
        store = PlacementStore(page_count=2)
        a = store.add(1, "a@example.com")
        store.add(2, "b@example.com")
        c = store.add(1, "c@example.com")
        assert store.for_page(1) == [a, c]
        assert store.for_page(3) == []

    def test_activate(self):
        """Unknown ids are ignored; None clears the selection."""
        store = PlacementStore(page_count=1)
        a = store.add(1, "a@example.com")
        b = store.add(1, "b@example.com")
        store.activate(a.placement_id)
        assert store.active is a
        store.activate("p-unknown")
        assert store.active is a
        store.activate(None)
        assert store.active is None
        assert b.placement_id != a.placement_id

    def test_clear(self):
        store = PlacementStore(page_count=1)
        store.add(1, "a@example.com")
        store.add(1, "b@example.com")
        store.clear()
        assert len(store) == 0
        assert store.active_id is None

    def test_rescale_single_page(self):
        store = PlacementStore(page_count=2)
        a = store.add(1, "a@example.com")
        b = store.add(2, "b@example.com")
        store.rescale(2.0, 0.5, page=1)
        assert (a.x, a.y, a.width, a.height) == (100, 25, 300, 25)
        assert (b.x, b.y) == (50, 50)

    def test_display_name_falls_back_to_email(self):
        store = PlacementStore(page_count=1)
        p = store.add(1, "bob@example.com", "  ")
        assert p.display_name == "bob@example.com"


class TestEditorSession:
    """Tests for sessions: viewport changes, clamped moves, native rects."""

    def _open(self, pages=(LETTER, LETTER)):
        registry = EditorSessionRegistry(maxsize=8, ttl_s=60)
        return registry, registry.open("doc-1", "user-alice", list(pages))

    def test_native_rect_of_default_placement(self):
        _, session = self._open()
        p = session.store.add(1, "bob@example.com")
        assert session.native_rect(p) == Rect(50, 692, 150, 50)

    def test_move_clamps_to_visible_page(self):
        _, session = self._open()
        p = session.store.add(1, "bob@example.com")
        session.move(p.placement_id, {"x": 5000, "y": 5000})
        assert (p.x, p.y) == (462, 742)
        assert session.move("p-unknown", {"x": 1}) is None

    def test_zoom_carries_placements_along(self):
        """Doubling the zoom doubles surface rects but not native rects."""
        _, session = self._open()
        p = session.store.add(1, "bob@example.com")
        q = session.store.add(2, "carol@example.com")
        session.set_viewport(1, SurfaceGeometry(612, 792), 2.0)
        assert (p.x, p.y, p.width, p.height) == (100, 100, 300, 100)
        assert (q.x, q.y) == (100, 100)
        assert session.native_rect(p) == Rect(50, 692, 150, 50)
        assert session.visible_bounds(1) == SurfaceGeometry(1224, 1584)

    def test_viewport_rejects_non_positive(self):
        _, session = self._open()
        with pytest.raises(ValidationError):
            session.set_viewport(1, SurfaceGeometry(0, 792), 1.0)
        with pytest.raises(ValidationError):
            session.set_viewport(1, SurfaceGeometry(612, 792), 0)

    def test_adopt_restores_surface_position(self):
        """A saved native rect comes back where it was placed."""
        _, session = self._open()
        p = session.adopt(1, Rect(50, 692, 150, 50), "bob@example.com", record_id="sig-1")
        assert (p.x, p.y, p.width, p.height) == (50, 50, 150, 50)
        assert p.record_id == "sig-1"

    def test_registry_scopes_sessions_to_owner(self):
        registry, session = self._open()
        assert registry.get(session.session_id, "user-alice") is session
        with pytest.raises(NotFoundError):
            registry.get(session.session_id, "user-mallory")
        assert registry.for_document("doc-1") == [session]
        registry.close(session.session_id, "user-alice")
        with pytest.raises(NotFoundError):
            registry.get(session.session_id, "user-alice")
        assert len(registry) == 0

    def test_open_rejects_empty_document(self):
        registry = EditorSessionRegistry()
        with pytest.raises(ValidationError):
            registry.open("doc-1", "user-alice", [])
