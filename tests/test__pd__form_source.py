import json
import os
import shutil
import tempfile
from unittest.mock import MagicMock, patch

import pytest

from workspace_tools.project_drive.errors import PermissionDenied
from workspace_tools.project_drive.form_source import (
    FormSubmission,
    fetch_latest_submission,
    load_submission,
    submission_from_answers,
)


def api_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = json.dumps(payload)
    return response


def form_response(response_id, submitted, identifier, name, email):
    return {
        "responseId": response_id,
        "lastSubmittedTime": submitted,
        "respondentEmail": email,
        "answers": {
            "q_id": {"questionId": "q_id", "textAnswers": {"answers": [{"value": identifier}]}},
            "q_name": {"questionId": "q_name", "textAnswers": {"answers": [{"value": name}]}},
        },
    }


class TestSubmission:
    """Test building submissions from answers."""

    def test_folder_name_joins_identifier_and_name(self):
        submission = FormSubmission("JP-001", "Acme", "pm@example.org")
        assert submission.folder_name == "JP-001 Acme"

    def test_from_answers_uses_first_two_answers(self):
        submission = submission_from_answers(["JP-12345", " Test Project ", "ignored"], "pm@example.org")
        assert submission.identifier == "JP-12345"
        assert submission.display_name == "Test Project"
        assert submission.email == "pm@example.org"

    def test_too_few_answers_raise_error(self):
        with pytest.raises(ValueError, match="Expected at least 2 answers"):
            submission_from_answers(["JP-1"], "pm@example.org")

    def test_empty_answers_raise_error(self):
        with pytest.raises(ValueError, match="must not be empty"):
            submission_from_answers(["JP-1", "  "], "pm@example.org")

    def test_missing_email_raises_error(self):
        with pytest.raises(ValueError, match="email address is missing"):
            submission_from_answers(["JP-1", "Acme"], None)
        with pytest.raises(ValueError, match="email address is missing"):
            submission_from_answers(["JP-1", "Acme"], "  ")


class TestLoadSubmission:
    """Test reading submissions from files."""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary directory for tests."""
        test_dir = tempfile.mkdtemp()
        yield test_dir
        shutil.rmtree(test_dir)

    def test_load_json_answers(self, temp_dir):
        path = os.path.join(temp_dir, "submission.json")
        with open(path, "w") as f:
            json.dump({"answers": ["JP-001", "Acme"], "email": "pm@example.org"}, f)

        submission = load_submission(path)

        assert submission.folder_name == "JP-001 Acme"
        assert submission.email == "pm@example.org"

    def test_load_yaml_named_fields(self, temp_dir):
        path = os.path.join(temp_dir, "submission.yaml")
        with open(path, "w") as f:
            f.write("identifier: JP-002\ndisplay_name: Beta Launch\nemail: lead@example.org\n")

        submission = load_submission(path)

        assert submission.identifier == "JP-002"
        assert submission.display_name == "Beta Launch"

    def test_load_without_email(self, temp_dir):
        path = os.path.join(temp_dir, "submission.json")
        with open(path, "w") as f:
            json.dump({"answers": ["JP-001", "Acme"]}, f)

        with pytest.raises(ValueError, match="email address is missing"):
            load_submission(path)

    def test_load_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_submission("nonexistent.json")

    def test_load_non_mapping(self, temp_dir):
        path = os.path.join(temp_dir, "submission.json")
        with open(path, "w") as f:
            json.dump(["JP-001", "Acme"], f)

        with pytest.raises(ValueError, match="must contain a mapping"):
            load_submission(path)


class TestFetchLatestSubmission:
    """Test reading the latest Google Form response."""

    def test_latest_response_is_used(self):
        page = {
            "responses": [
                form_response("r1", "2024-05-01T09:30:00.5Z", "JP-001", "Old", "old@example.org"),
                form_response("r2", "2024-05-01T09:30:00.123456Z", "JP-002", "Also Old", "old2@example.org"),
                form_response("r3", "2024-05-02T08:00:00Z", "JP-003", "Newest", "new@example.org"),
            ]
        }
        with patch("requests.get", return_value=api_response(page)) as mock_get:
            submission = fetch_latest_submission("form1", "token-1", ["q_id", "q_name"])

        assert submission.folder_name == "JP-003 Newest"
        assert submission.email == "new@example.org"
        mock_get.assert_called_once()
        assert mock_get.call_args[0][0] == "https://forms.googleapis.com/v1/forms/form1/responses"
        assert mock_get.call_args[1]["headers"]["Authorization"] == "Bearer token-1"

    def test_fractional_seconds_compare_correctly(self):
        page = {
            "responses": [
                form_response("r1", "2024-05-01T09:30:00.5Z", "JP-001", "Later", "a@example.org"),
                form_response("r2", "2024-05-01T09:30:00Z", "JP-002", "Earlier", "b@example.org"),
            ]
        }
        with patch("requests.get", return_value=api_response(page)):
            submission = fetch_latest_submission("form1", "t", ["q_id", "q_name"])

        assert submission.identifier == "JP-001"

    def test_question_order_read_from_form(self):
        form = {
            "items": [
                {"title": "Section", "pageBreakItem": {}},
                {"questionItem": {"question": {"questionId": "q_id"}}},
                {"questionItem": {"question": {"questionId": "q_name"}}},
            ]
        }
        responses_page_1 = {
            "responses": [form_response("r1", "2024-01-01T00:00:00Z", "JP-001", "First", "a@example.org")],
            "nextPageToken": "next",
        }
        responses_page_2 = {
            "responses": [form_response("r2", "2024-02-01T00:00:00Z", "JP-002", "Second", "b@example.org")],
        }
        side_effect = [api_response(form), api_response(responses_page_1), api_response(responses_page_2)]
        with patch("requests.get", side_effect=side_effect) as mock_get:
            submission = fetch_latest_submission("form1", "t")

        assert submission.folder_name == "JP-002 Second"
        urls = [c[0][0] for c in mock_get.call_args_list]
        assert urls[0] == "https://forms.googleapis.com/v1/forms/form1"
        assert mock_get.call_args_list[2][1]["params"] == {"pageToken": "next"}

    def test_response_without_respondent_email(self):
        response = form_response("r1", "2024-05-02T08:00:00Z", "JP-001", "Acme", None)
        del response["respondentEmail"]
        with patch("requests.get", return_value=api_response({"responses": [response]})):
            with pytest.raises(ValueError, match="email address is missing"):
                fetch_latest_submission("form1", "t", ["q_id", "q_name"])

    def test_no_responses_raises_lookup_error(self):
        with patch("requests.get", return_value=api_response({})):
            with pytest.raises(LookupError, match="has no responses"):
                fetch_latest_submission("form1", "t", ["q_id", "q_name"])

    def test_forbidden_form_raises_permission_denied(self):
        with patch("requests.get", return_value=api_response({"error": {"code": 403}}, status_code=403)):
            with pytest.raises(PermissionDenied):
                fetch_latest_submission("form1", "t", ["q_id", "q_name"])
