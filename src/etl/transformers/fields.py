"""
Airtable 컬럼명 매핑 테이블.

키는 코드에서 사용하는 정규화된 이름, 값은 Airtable의 실제 컬럼명입니다.
컬럼명이 바뀌면 이 파일만 수정하면 됩니다. 번호가 붙는 반복 그룹은
`{i}` 자리표시자를 가진 템플릿으로 정의합니다.
"""

CONTENTS_FIELDS: dict[str, str] = {
    "title": "*액티비티 타이틀",
    "creator": "액티비티 기획자",
    "thumbnail": "*액티비티 썸네일",
    "thumbnail_sound": "\b썸네일_소리출력",
    "category_main": "*메인 장르",
    "category_sub": "*서브 장르",
    "level": "난이도",
    "active_plan": "*활동 설명",
    "essential_info": "* 필수 항목 안내 문구(퓨처랩)",
    "lead_sentence": "* 활동 시작 발문(퓨처랩)",
    "ai_prompt": "*챌린지 설명(콘텐츠 맵)",
    "playtime": "*예상 소요시간",
    "materials": "준비물 데이터",
    "posting_guide": "P형 포스트 가이드",
    "recommendation": "추천 활동",
    "guide_portrait": "활동가이드 4:5(세로가긴) 비율로 노출되나요?",
}

CONTENTS_GUIDE_COUNT = 9
CONTENTS_GUIDE_FIELDS: dict[str, str] = {
    "media": "활동 가이드 {i}_이미지",
    "guide": "활동 가이드 {i}_설명",
    "sound": "활동가이드{i}_소리출력",
    "tip": "활동 가이드_{i}_팁",
}
# 첫 번째 활동 가이드는 필수 표시(*)가 붙은 컬럼명을 사용
CONTENTS_FIRST_GUIDE_FIELDS: dict[str, str] = {
    "media": "*활동 가이드 1_이미지",
    "guide": "*활동 가이드 1_설명",
}

CONTENTS_TIP_COUNT = 3
CONTENTS_TIP_FIELDS: dict[str, str] = {
    "media": "준비 Tip {i}_이미지",
    "comment": "준비 Tip {i}_설명",
}

MATERIAL_FIELDS: dict[str, str] = {
    "material": "재료명",
    "image": "재료사진",
}
MATERIAL_TIP_COUNT = 3
MATERIAL_TIP_FIELDS: dict[str, str] = {
    "tip": "준비물Tip 설명 {i}",
    "images": "준비물Tip 이미지 {i}",
}

POSTING_GUIDE_FIELDS: dict[str, str] = {
    "media_guide": "*미디어 촬영/선택 가이드 텍스트",
    "title_guide": "*제목 작성 가이드 텍스트",
    "desc_guide": "설명 작성 가이드 텍스트",
}

WORLD_POST_GUIDE_FIELDS: dict[str, str] = {
    "challenge": "챌린지명",
    "ai_prompt": "매개자 AI 프롬프트",
    "media_guide": "매개자 사진/영상 제출 유도 대사",
    "desc_guide": "프로젝트 설명하기 가이드 문구",
}

WORLD_FIELDS: dict[str, str] = {
    "title": "월드명",
    "description": "월드 소개 텍스트",
    "creators": "매개자 이름",
    "groups": "그룹 이름",
    "lead_sentence": "월드맵 환영 문구",
    "intro_media": "월드 소개 영상",
    "asset_back": "월드 썸네일_Back",
    "asset_middle": "월드 썸네일_Middle",
    "asset_front": "월드 썸네일_Front",
}
WORLD_KEYWORD_FIELDS: tuple[str, ...] = tuple(
    f"월드 핵심 키워드 {letter}" for letter in "ABCD"
)

GROUP_FIELDS: dict[str, str] = {
    "title": "그룹명",
    "order": "그룹 탐험 순서",
    "open_chats": "월드맵(매개자-유저 대화)",
    "challenges": "챌린지 소개 페이지",
}

CHALLENGE_FIELDS: dict[str, str] = {
    "title": "챌린지명",
    "description": "챌린지 소개 텍스트",
    "level": "난이도",
    "thumbnail": "챌린지 썸네일",
    "category_main": "메인장르",
    "category_sub": "서브장르",
    "activity_guides": "챌린지 상세 페이지",
}
CHALLENGE_CHECKLIST_FIELDS: tuple[str, ...] = tuple(
    f"재료/상태 유저 체크리스트 {letter}" for letter in "ABCDE"
)

CHAT_MODULE_COUNT = 15
CHAT_MODULE_FIELD = "모듈 선택 {i}"
CHAT_MODULE_BUTTON = "모듈1 : 버튼 반응형"
CHAT_MODULE_INTERACTION = "모듈2 : 인터랙션형"
CHAT_MODULE_TYPING = "모듈3 : 타이핑형"
CHAT_FIELDS: dict[str, str] = {
    "button_text": "버튼 반응형-매개자 대사 1 / 모듈 선택 {i}",
    "button_image": "버튼 반응형-매개자 이미지 1 / 모듈 선택 {i}",
    "button_option_text": "버튼 반응형-유저 선택지 내용 {n} / 모듈 선택 {i}",
    "button_option_image": "버튼 반응형-유저 선택지 이미지 {n} / 모듈 선택 {i}",
    "interaction_text": "인터랙션형-매개자 대사 / 모듈 선택 {i}",
    "interaction_title": "인터랙션형-유저선택 버튼 이미지 {n} 설명 텍스트 / 모듈 선택 {i}",
    "interaction_button": "인터랙션형-유저선택 버튼 이미지 {n} / 모듈 선택 {i}",
    "interaction_response_image": "인터랙션형-선택지 {n} 응답 이미지 / 모듈 선택 {i}",
    "interaction_response_text": "인터랙션형-선택지 {n} 응답 텍스트 / 모듈 선택 {i}",
    "typing_text": "타이핑형-매개자 대사 / 모듈 선택 {i}",
    "end_text": "모듈 4 대화 종료 매개자 대사",
    "end_media": "모듈 4 대화 종료 매개자 첨부 미디어",
}

OPEN_CHAT_FIELDS: dict[str, str] = {
    "speech": "대화 {d}: 발화 {u} 매개자 대사",
    "speaker": "대화 {d}: 발화 {u}의 발화자",
    "response": "대화 {d}: 응답 {u} 유저 대사",
    "response_speaker": "대화 {d}: 응답 {u}의 발화자",
    "response_option": "대화 {d}: 응답 {u} 유저 대사 선택 {option}",
    "d2_option": "대화 2: 유저 옵션 선택 {n}",
    "d2_mediator_response": "대화 2: 매개자 응답 {n}",
    "d2_confirm": "대화 2: 매개자 확인 질문",
    "d2_user_response": "대화 2: 유저 응답 {option}",
}
OPEN_CHAT_SPEAKER_MEDIATOR = "매개자"
OPEN_CHAT_SPEAKER_USER = "유저"
OPEN_CHAT_SPEAKER_USER_OPTION = "유저-옵션 선택"

PARTS_FIELDS: dict[str, str] = {
    "name": "파츠명",
    "type": "종류",
    "group": "그룹",
    "category": "카테고리",
    "color": "색상",
    "sequence": "순서",
    "tracking": "추적",
    "assets": "Assets",
    "image": "이미지",
}
