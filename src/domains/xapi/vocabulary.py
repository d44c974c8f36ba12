# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""xAPI verbs, extension IRIs and activity types used by the platform."""

from typing import Any

XAPI_VERSION = "1.0.3"
PLATFORM_HOME_PAGE = "https://adaptive-lms.com"

_ADL_VERB = "http://adlnet.gov/expapi/verbs/"
_LMS_VERB = "https://adaptive-lms.com/xapi/verbs/"

XAPI_VERBS: dict[str, dict[str, Any]] = {
    "launched": {"id": f"{_ADL_VERB}launched", "display": {"en-US": "launched", "th-TH": "เปิด"}},
    "initialized": {
        "id": f"{_ADL_VERB}initialized",
        "display": {"en-US": "initialized", "th-TH": "เริ่มต้น"},
    },
    "progressed": {
        "id": f"{_ADL_VERB}progressed",
        "display": {"en-US": "progressed", "th-TH": "ก้าวหน้า"},
    },
    "completed": {
        "id": f"{_ADL_VERB}completed",
        "display": {"en-US": "completed", "th-TH": "เสร็จสิ้น"},
    },
    "terminated": {
        "id": f"{_ADL_VERB}terminated",
        "display": {"en-US": "terminated", "th-TH": "สิ้นสุด"},
    },
    "answered": {"id": f"{_ADL_VERB}answered", "display": {"en-US": "answered", "th-TH": "ตอบ"}},
    "passed": {"id": f"{_ADL_VERB}passed", "display": {"en-US": "passed", "th-TH": "ผ่าน"}},
    "failed": {"id": f"{_ADL_VERB}failed", "display": {"en-US": "failed", "th-TH": "ไม่ผ่าน"}},
    "experienced": {
        "id": f"{_ADL_VERB}experienced",
        "display": {"en-US": "experienced", "th-TH": "ได้รับประสบการณ์"},
    },
    "interacted": {
        "id": f"{_ADL_VERB}interacted",
        "display": {"en-US": "interacted", "th-TH": "โต้ตอบ"},
    },
    "tutor_asked": {
        "id": f"{_LMS_VERB}tutor-asked",
        "display": {"en-US": "asked tutor", "th-TH": "ถามผู้สอน AI"},
    },
    "tutor_rated": {
        "id": f"{_LMS_VERB}tutor-rated",
        "display": {"en-US": "rated tutor", "th-TH": "ให้คะแนนผู้สอน AI"},
    },
    "requested_hint": {
        "id": f"{_LMS_VERB}requested-hint",
        "display": {"en-US": "requested hint", "th-TH": "ขอคำใบ้"},
    },
}

_EXT = "https://adaptive-lms.com/xapi/ext/"

XAPI_EXTENSIONS: dict[str, str] = {
    "platform": f"{_EXT}platform",
    "language": f"{_EXT}language",
    "hints_used": f"{_EXT}hints_used",
    "tutor_mode": f"{_EXT}tutor_mode",
    "tutor_citation_count": f"{_EXT}tutor_citation_count",
    "device_id": f"{_EXT}device_id",
    "mastery_before": f"{_EXT}mastery_before",
    "mastery_after": f"{_EXT}mastery_after",
}

XAPI_ACTIVITY_TYPES: dict[str, str] = {
    "course": "http://adlnet.gov/expapi/activities/course",
    "module": "http://adlnet.gov/expapi/activities/module",
    "lesson": "http://adlnet.gov/expapi/activities/lesson",
    "assessment": "http://adlnet.gov/expapi/activities/assessment",
    "question": "http://adlnet.gov/expapi/activities/question",
    "tutor_session": "https://adaptive-lms.com/xapi/activities/tutor-session",
    "competency": "https://adaptive-lms.com/xapi/activities/competency",
}

PLATFORMS = ("web", "ios", "android")
LANGUAGES = ("th", "en")
