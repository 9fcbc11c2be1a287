"""
Tests for announcement paging and vote merging helpers
"""

import pytest

from app.modules.announcements.image_storage import ImageStorage
from app.modules.announcements.service import merge_user_votes, page_range, total_pages


@pytest.mark.parametrize("page,page_size,expected", [
    (1, 10, (0, 9)),
    (2, 10, (10, 19)),
    (3, 25, (50, 74)),
])
def test_page_range(page, page_size, expected):
    assert page_range(page, page_size) == expected


def test_total_pages():
    assert total_pages(0, 10) == 0
    assert total_pages(10, 10) == 1
    assert total_pages(11, 10) == 2


def _row(announcement_id):
    return {
        "id": announcement_id,
        "group_id": "group-1",
        "author_id": "user-1",
        "title": "Exam moved",
        "content": "Now on Friday",
        "created_at": "2025-01-01T00:00:00+00:00",
        "updated_at": "2025-01-01T00:00:00+00:00",
    }


def test_merge_user_votes():
    rows = [_row("a1"), _row("a2")]
    votes = [{"announcement_id": "a2", "vote_type": "downvote"}]
    merged = merge_user_votes(rows, votes)
    assert [a.user_vote for a in merged] == [None, "downvote"]
    assert merged[0].title == "Exam moved"


def test_image_path_is_under_user_folder():
    storage = ImageStorage(supabase=None, bucket_name="announcement-images")
    path = storage.build_path("user-1", "Poster.PNG")
    folder, name = path.split("/")
    assert folder == "user-1"
    assert name.endswith(".png")
