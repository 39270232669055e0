"""Reading intake form submissions.

A submission is read either from a local JSON/YAML file or as the most
recent response of a Google Form.
"""

import json
import logging

import requests
import yaml

from workspace_tools.project_drive.storage_drive import raise_for_google_status

logger = logging.getLogger(__name__)

FORMS_API_URL = "https://forms.googleapis.com/v1"


class FormSubmission:
    """Answers of one intake form submission."""

    def __init__(self, identifier, display_name, email):
        self.identifier = identifier
        self.display_name = display_name
        self.email = email

    @property
    def folder_name(self):
        """Project folder name, also used as the placeholder replacement."""
        return f"{self.identifier} {self.display_name}"

    def __repr__(self):
        return f"FormSubmission(identifier={self.identifier!r}, display_name={self.display_name!r}, email={self.email!r})"


def submission_from_answers(answers, email):
    """Build a submission from answers listed in form field order.

    The first answer is the project identifier, the second the project name.

    Args:
        answers: Answer values in field order
        email: Respondent email address

    Returns:
        FormSubmission
    """
    if len(answers) < 2:
        error_msg = f"Expected at least 2 answers (identifier, project name), got {len(answers)}"
        raise ValueError(error_msg)

    identifier = str(answers[0]).strip()
    display_name = str(answers[1]).strip()
    if not identifier or not display_name:
        error_msg = "Project identifier and project name must not be empty"
        raise ValueError(error_msg)

    email = str(email or "").strip()
    if not email:
        error_msg = "Submitter email address is missing; enable email collection on the form"
        raise ValueError(error_msg)

    return FormSubmission(identifier, display_name, email)


def load_submission(path):
    """Load a submission from a JSON or YAML file.

    The file holds either ``answers`` (a list in form field order) and
    ``email``, or explicit ``identifier``, ``display_name`` and ``email`` keys.

    Args:
        path: Path to the submission file

    Returns:
        FormSubmission
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f) if path.endswith(".json") else yaml.safe_load(f)

    if not isinstance(data, dict):
        error_msg = f"Submission file must contain a mapping: {path}"
        raise ValueError(error_msg)

    if "answers" in data:
        answers = data["answers"]
    else:
        answers = [data.get("identifier", ""), data.get("display_name", "")]
    return submission_from_answers(answers, data.get("email"))


def _forms_get(path, token, params=None):
    url = f"{FORMS_API_URL}/{path}"
    logger.debug("GET %s params=%s", url, params)
    response = requests.get(url, params=params, headers={"Authorization": f"Bearer {token}"})
    raise_for_google_status(response, f"Forms request {path}")
    return response.json()


def _question_ids_in_form_order(form_id, token):
    form = _forms_get(f"forms/{form_id}", token)
    question_ids = []
    for item in form.get("items", []):
        question = item.get("questionItem", {}).get("question")
        if question:
            question_ids.append(question["questionId"])
    return question_ids


def _submitted_key(response):
    # "2024-05-01T09:30:00.123Z": compare the seconds part, then the padded fraction
    base, _, fraction = response.get("lastSubmittedTime", "").rstrip("Z").partition(".")
    return base, fraction.ljust(9, "0")


def _answer_value(response, question_id):
    answer = response.get("answers", {}).get(question_id, {})
    values = answer.get("textAnswers", {}).get("answers", [])
    return values[0].get("value", "") if values else ""


def fetch_latest_submission(form_id, token, question_ids=None):
    """Fetch the most recent response of a Google Form.

    Args:
        form_id: Google Form id
        token: OAuth bearer token with forms.responses.readonly scope
        question_ids: Question ids in field order. When omitted, the order of
            the questions in the form is used.

    Returns:
        FormSubmission
    """
    if not question_ids:
        question_ids = _question_ids_in_form_order(form_id, token)

    latest = None
    params = {}
    while True:
        page = _forms_get(f"forms/{form_id}/responses", token, params=params)
        for response in page.get("responses", []):
            if latest is None or _submitted_key(response) > _submitted_key(latest):
                latest = response
        page_token = page.get("nextPageToken")
        if not page_token:
            break
        params = {"pageToken": page_token}

    if latest is None:
        error_msg = f"Form {form_id} has no responses"
        raise LookupError(error_msg)

    logger.info("Using form response %s submitted at %s", latest.get("responseId"), latest.get("lastSubmittedTime"))
    answers = [_answer_value(latest, question_id) for question_id in question_ids]
    return submission_from_answers(answers, latest.get("respondentEmail"))
