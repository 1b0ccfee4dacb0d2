"""Unit tests for meeting URL scoring and selection."""
import pytest

from processor.meeting_selector import combine_urls, score_meeting_url, select_meeting_url


class TestScoreMeetingUrl:
    """Test cases for score_meeting_url."""

    @pytest.mark.parametrize('url, score', [
        ('https://us02web.zoom.us/j/123456789', 9),
        ('https://us02web.zoom.us/j/123456789?pwd=secret', 10),
        ('https://zoom.us/s/123', 9),
        ('https://zoom.us/wc/join/123', 9),
        ('https://zoom.us/wc/start/123', 9),
        ('zoommtg://zoom.us/join?action=join&confno=1&uname=Jane', 9),
        ('zoommtg://zoom.us/join?action=join&confno=1&uname=Jane&pwd=x', 10),
        ('https://zoom.us/my/jane', 1),
        ('https://zoom.us/', 1),
        ('https://meet.google.com/abc-defg-hij', 9),
        ('https://meet.google.com/abc-defg-hij?authuser=me%40example.com', 9),
        ('https://meet.google.com/lookup/team', 1),
        ('https://meet.google.com/abc-defg', 1),
        ('https://whereby.com/team-room', 9),
        ('https://whereby.com/team-room/settings', 1),
        ('https://teams.microsoft.com/l/meetup-join/1', 0),
    ])
    def test_scores(self, url, score):
        """Test the scoring table."""
        assert score_meeting_url(url) == score


class TestSelectMeetingUrl:
    """Test cases for select_meeting_url."""

    def test_tie_keeps_first(self):
        """Test that the first of equal scores wins."""
        first = 'https://zoom.us/j/111'
        second = 'https://meet.google.com/abc-defg-hij'

        assert select_meeting_url([first, second]) == first

    def test_higher_score_wins(self):
        """Test that a later, better URL is preferred."""
        urls = ['https://zoom.us/my/jane', 'https://zoom.us/j/111', 'https://zoom.us/j/111?pwd=x']

        assert select_meeting_url(urls) == 'https://zoom.us/j/111?pwd=x'

    def test_single_low_score_url_is_selected(self):
        """Test that a generic meeting URL is selected when alone."""
        assert select_meeting_url(['https://example.zoom.us']) == 'https://example.zoom.us'

    def test_empty(self):
        """Test that no meeting URLs select nothing."""
        assert select_meeting_url([]) is None


class TestCombineUrls:
    """Test cases for combine_urls."""

    def test_meeting_first_and_deduplicated(self):
        """Test ordering and deduplication."""
        urls = combine_urls(
            'https://zoom.us/j/1',
            ['https://a.example', 'https://zoom.us/j/1', 'https://b.example', 'https://a.example'],
        )

        assert urls == ['https://zoom.us/j/1', 'https://a.example', 'https://b.example']

    def test_without_meeting(self):
        """Test combining only other URLs."""
        assert combine_urls(None, ['https://a.example']) == ['https://a.example']
