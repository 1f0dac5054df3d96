"""Localized strings the booking flow must emit verbatim.

Only the handful of strings the orchestrator itself produces live here: the
specialty and level labels written into generated data, the exact
name prompt, and the follow-up messages the chat UI echoes back as the next
user turn.  Everything else the user sees is written by the LLM in the
conversation language.
"""

from __future__ import annotations

from enum import Enum


class Specialty(str, Enum):
    """Closed taxonomy of teaching subjects."""

    ENGLISH = "english"
    JAPANESE = "japanese"
    KOREAN = "korean"


class CourseLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


SPECIALTY_LABELS: dict[str, dict[Specialty, str]] = {
    "zh-TW": {Specialty.ENGLISH: "美語", Specialty.JAPANESE: "日語", Specialty.KOREAN: "韓語"},
    "en": {Specialty.ENGLISH: "English", Specialty.JAPANESE: "Japanese", Specialty.KOREAN: "Korean"},
    "ja": {Specialty.ENGLISH: "英語", Specialty.JAPANESE: "日本語", Specialty.KOREAN: "韓国語"},
    "ko": {Specialty.ENGLISH: "영어", Specialty.JAPANESE: "일본어", Specialty.KOREAN: "한국어"},
}

# Extra spellings users (and the LLM) use for each specialty
_SPECIALTY_ALIASES: dict[Specialty, tuple[str, ...]] = {
    Specialty.ENGLISH: ("english", "英文", "英語", "英语", "美語", "美语", "英國語", "美國語", "영어"),
    Specialty.JAPANESE: ("japanese", "日文", "日語", "日语", "日本語", "日本语", "일본어"),
    # "韓國" also covers 韓國語 and 韓國話
    Specialty.KOREAN: ("korean", "韓文", "韓語", "韩语", "韓國", "韓国", "韩国", "한국어"),
}

LEVEL_LABELS: dict[str, dict[CourseLevel, str]] = {
    "zh-TW": {CourseLevel.BEGINNER: "初級", CourseLevel.INTERMEDIATE: "中級", CourseLevel.ADVANCED: "高級"},
    "en": {CourseLevel.BEGINNER: "Beginner", CourseLevel.INTERMEDIATE: "Intermediate", CourseLevel.ADVANCED: "Advanced"},
    "ja": {CourseLevel.BEGINNER: "初級", CourseLevel.INTERMEDIATE: "中級", CourseLevel.ADVANCED: "上級"},
    "ko": {CourseLevel.BEGINNER: "초급", CourseLevel.INTERMEDIATE: "중급", CourseLevel.ADVANCED: "고급"},
}

_LEVEL_ALIASES: dict[CourseLevel, tuple[str, ...]] = {
    CourseLevel.BEGINNER: ("beginner", "初級", "初级", "초급", "入門"),
    CourseLevel.INTERMEDIATE: ("intermediate", "中級", "中级", "중급"),
    CourseLevel.ADVANCED: ("advanced", "高級", "高级", "上級", "고급"),
}

NAME_PROMPTS: dict[str, str] = {
    "zh-TW": "請提供您的姓名",
    "en": "Please provide your name",
    "ja": "お名前を入力してください",
    "ko": "이름을 입력해 주세요",
}

# Messages the UI appends as the next user turn when a card button is pressed
FOLLOW_UPS: dict[str, dict[str, str]] = {
    "zh-TW": {
        "view_teacher": "我想了解 {teacher_name} 老師的課程！",
        "view_schedule": "查看可預約時段",
        "book_course": "我想預約{course_name}，費用是{price}元！",
        "confirm_reservation": "我要確認預約並付款，預約編號：{reservation_id}",
        "modify_reservation": "我要修改預約，預約編號：{reservation_id}",
        "confirm_payment": "確認付款 - {reservation_id}",
        "retry_payment": "我要重新付款",
        "view_reservation": "我要查看預約詳情",
    },
    "en": {
        "view_teacher": "I'd like to know more about {teacher_name}'s courses!",
        "view_schedule": "View Available Time Slots",
        "book_course": "I'd like to book {course_name}, the price is {price}!",
        "confirm_reservation": "I want to confirm the reservation and pay, reservation ID: {reservation_id}",
        "modify_reservation": "I want to change my reservation, reservation ID: {reservation_id}",
        "confirm_payment": "Confirm Payment - {reservation_id}",
        "retry_payment": "I want to retry the payment",
        "view_reservation": "I want to see my reservation details",
    },
    "ja": {
        "view_teacher": "{teacher_name}先生のコースについて知りたいです！",
        "view_schedule": "予約可能な時間を確認",
        "book_course": "{course_name}を予約したいです。料金は{price}円です！",
        "confirm_reservation": "予約を確定して支払います。予約番号：{reservation_id}",
        "modify_reservation": "予約を変更したいです。予約番号：{reservation_id}",
        "confirm_payment": "支払いを確認 - {reservation_id}",
        "retry_payment": "もう一度支払います",
        "view_reservation": "予約の詳細を見たいです",
    },
    "ko": {
        "view_teacher": "{teacher_name} 선생님의 수업에 대해 알고 싶어요!",
        "view_schedule": "예약 가능 시간 확인",
        "book_course": "{course_name}을(를) 예약하고 싶어요. 가격은 {price}입니다!",
        "confirm_reservation": "예약을 확정하고 결제할게요. 예약 번호: {reservation_id}",
        "modify_reservation": "예약을 변경하고 싶어요. 예약 번호: {reservation_id}",
        "confirm_payment": "결제 확인 - {reservation_id}",
        "retry_payment": "다시 결제할게요",
        "view_reservation": "예약 상세 정보를 보고 싶어요",
    },
}

_EDUCATION: dict[str, dict[Specialty | None, str]] = {
    "zh-TW": {
        Specialty.ENGLISH: "美國哥倫比亞大學教育碩士",
        Specialty.JAPANESE: "日本早稻田大學日本語教育碩士",
        Specialty.KOREAN: "韓國首爾大學韓語教育碩士",
        None: "國外知名大學語言教育碩士",
    },
    "en": {
        Specialty.ENGLISH: "M.A. in Education, Columbia University",
        Specialty.JAPANESE: "M.A. in Japanese Language Education, Waseda University",
        Specialty.KOREAN: "M.A. in Korean Language Education, Seoul National University",
        None: "M.A. in Language Education",
    },
    "ja": {
        Specialty.ENGLISH: "コロンビア大学 教育学修士",
        Specialty.JAPANESE: "早稲田大学 日本語教育修士",
        Specialty.KOREAN: "ソウル大学 韓国語教育修士",
        None: "海外大学 言語教育修士",
    },
    "ko": {
        Specialty.ENGLISH: "컬럼비아 대학교 교육학 석사",
        Specialty.JAPANESE: "와세다 대학교 일본어교육 석사",
        Specialty.KOREAN: "서울대학교 한국어교육 석사",
        None: "해외 대학 언어교육 석사",
    },
}

_ACHIEVEMENTS: dict[str, dict[Specialty | None, list[str]]] = {
    "zh-TW": {
        Specialty.ENGLISH: ["多益滿分", "劍橋英語教師認證", "美國教育部認證語言教師"],
        Specialty.JAPANESE: ["JLPT N1", "日本語教育能力檢定合格", "日本文部省認證教師資格"],
        Specialty.KOREAN: ["TOPIK 6級", "韓國語教育能力檢定合格", "韓國教育部認證教師資格"],
        None: ["語言能力檢定高級證書", "教師專業認證", "豐富的教學經驗"],
    },
    "en": {
        Specialty.ENGLISH: ["Perfect TOEIC score", "Cambridge CELTA certified", "State-certified language teacher"],
        Specialty.JAPANESE: ["JLPT N1", "Japanese Language Teaching Competency Test passed", "Certified Japanese language teacher"],
        Specialty.KOREAN: ["TOPIK Level 6", "Korean Language Teaching Competency Test passed", "Certified Korean language teacher"],
        None: ["Advanced language proficiency certificate", "Professional teaching certification", "Extensive teaching experience"],
    },
    "ja": {
        Specialty.ENGLISH: ["TOEIC満点", "ケンブリッジ英語教師資格", "米国認定語学教師"],
        Specialty.JAPANESE: ["JLPT N1", "日本語教育能力検定試験合格", "日本語教師資格"],
        Specialty.KOREAN: ["TOPIK 6級", "韓国語教育能力検定合格", "韓国語教師資格"],
        None: ["語学検定上級", "教員資格", "豊富な指導経験"],
    },
    "ko": {
        Specialty.ENGLISH: ["토익 만점", "케임브리지 영어교사 자격", "미국 공인 언어 교사"],
        Specialty.JAPANESE: ["JLPT N1", "일본어교육능력검정 합격", "일본어 교사 자격"],
        Specialty.KOREAN: ["TOPIK 6급", "한국어교육능력검정 합격", "한국어 교원 자격"],
        None: ["언어능력검정 고급", "교원 자격", "풍부한 강의 경험"],
    },
}

_TEACHING_STYLE: dict[str, str] = {
    "zh-TW": "專注於{label}教學，採用互動式教學方法，重視實用對話和應用。",
    "en": "Focused on {label} instruction with an interactive approach that emphasizes practical conversation.",
    "ja": "{label}指導に特化し、実践的な会話を重視したインタラクティブな授業を行います。",
    "ko": "{label} 교육에 집중하며 실용 회화를 중시하는 상호작용형 수업을 진행합니다.",
}

_DEFAULT_TEACHER: dict[str, dict[str, str]] = {
    "zh-TW": {
        "name": "{number} 號老師",
        "experience": "10年教學經驗",
        "available_time": "週一至週五 上午9點-晚上8點",
        "location": "台北市",
        "description": "經驗豐富的語言老師",
    },
    "en": {
        "name": "Teacher {number}",
        "experience": "10 years teaching experience",
        "available_time": "Monday-Friday 9AM-8PM",
        "location": "Taipei",
        "description": "Experienced language teacher",
    },
    "ja": {
        "name": "{number}番の先生",
        "experience": "指導経験10年",
        "available_time": "月曜日〜金曜日 午前9時〜午後8時",
        "location": "台北市",
        "description": "経験豊富な語学講師",
    },
    "ko": {
        "name": "{number}번 선생님",
        "experience": "강의 경력 10년",
        "available_time": "월-금 오전 9시-오후 8시",
        "location": "타이베이",
        "description": "경험이 풍부한 언어 선생님",
    },
}


def _strings(table: dict[str, dict], language: str) -> dict:
    return table.get(language) or table["en"]


def parse_specialty(text: str | None) -> Specialty | None:
    """Find the specialty named in *text* in any supported language."""
    if not text:
        return None
    lowered = text.lower()
    for specialty, aliases in _SPECIALTY_ALIASES.items():
        if any(alias in lowered for alias in aliases):
            return specialty
    return None


def parse_level(text: str | None) -> CourseLevel | None:
    if not text:
        return None
    lowered = text.lower()
    for level, aliases in _LEVEL_ALIASES.items():
        if any(alias in lowered for alias in aliases):
            return level
    return None


# Phrases that pick an entry from a list by position; -1 is the last entry.
# Matched against the message with whitespace removed.
_ORDINALS: tuple[tuple[int, tuple[str, ...]], ...] = (
    (0, ("firstone", "firstcourse", "firstclass", "第一個", "第一个", "第一堂", "第一門", "一つ目", "1つ目", "一番目", "첫번째")),
    (1, ("secondone", "secondcourse", "secondclass", "第二個", "第二个", "第二堂", "第二門", "二つ目", "2つ目", "二番目", "두번째")),
    (2, ("thirdone", "thirdcourse", "thirdclass", "第三個", "第三个", "第三堂", "第三門", "三つ目", "3つ目", "三番目", "세번째")),
    (3, ("fourthone", "fourthcourse", "fourthclass", "第四個", "第四个", "第四堂", "第四門", "四つ目", "4つ目", "四番目", "네번째")),
    (4, ("fifthone", "fifthcourse", "fifthclass", "第五個", "第五个", "第五堂", "第五門", "五つ目", "5つ目", "五番目", "다섯번째")),
    (-1, ("lastone", "lastcourse", "lastclass", "最後一個", "最后一个", "最後一堂", "最後のコース", "마지막수업", "마지막것")),
)


def parse_ordinal(text: str | None) -> int | None:
    """List position named in *text* ("the second one", "第二堂"), if any."""
    if not text:
        return None
    compact = "".join(text.split()).lower()
    for index, phrases in _ORDINALS:
        if any(phrase in compact for phrase in phrases):
            return index
    return None


def specialty_label(specialty: Specialty, language: str) -> str:
    return _strings(SPECIALTY_LABELS, language)[specialty]


def level_label(level: CourseLevel, language: str) -> str:
    return _strings(LEVEL_LABELS, language)[level]


def name_prompt(language: str) -> str:
    return NAME_PROMPTS.get(language, NAME_PROMPTS["en"])


def follow_up(kind: str, language: str, **values) -> str:
    """Render the follow-up message a UI button sends for *kind*."""
    return _strings(FOLLOW_UPS, language)[kind].format(**values)


def education_for(specialty: Specialty | None, language: str) -> str:
    return _strings(_EDUCATION, language)[specialty]


def achievements_for(specialty: Specialty | None, language: str) -> list[str]:
    return list(_strings(_ACHIEVEMENTS, language)[specialty])


def teaching_style_for(specialty: Specialty | None, language: str, fallback_label: str) -> str:
    label = specialty_label(specialty, language) if specialty else fallback_label
    return _strings(_TEACHING_STYLE, language).format(label=label)


def default_teacher_fields(teacher_number: str, language: str) -> dict[str, str]:
    """Placeholder profile text for a teacher id that was never listed."""
    fields = dict(_strings(_DEFAULT_TEACHER, language))
    fields["name"] = fields["name"].format(number=teacher_number)
    return fields
