from src.etl.transformers.chats import (
    DEFAULT_OCTO_CATEGORY,
    DEFAULT_OCTO_THUMBNAIL,
    ChatTransformer,
    OpenChatTransformer,
    octo_item,
    split_final_pass,
    split_text_messages,
)
from src.etl.transformers.fields import CHAT_FIELDS, CHAT_MODULE_FIELD, OPEN_CHAT_FIELDS


def test_split_text_messages_media_only_on_first():
    """
    [GREEN]
    "A\\B\\C"는 3개 메시지가 되고, 미디어는 첫 메시지에만 남습니다.
    """
    media = [{"title": None, "image": [], "imageDescription": None}]

    messages = split_text_messages("A\\B\\C", "ahhaohho", media)

    assert [m["prompts"][0]["text"] for m in messages] == ["A", "B", "C"]
    assert messages[0]["prompts"][0]["media"] is media
    assert messages[0]["type"] == "text+image"
    assert all(m["prompts"][0]["media"] is None for m in messages[1:])
    assert all(m["type"] == "text" for m in messages[1:])


def test_split_text_messages_without_delimiter():
    messages = split_text_messages("안녕", "ahhaohho")

    assert len(messages) == 1
    assert messages[0] == {
        "type": "text",
        "talker": "ahhaohho",
        "hasOpts": False,
        "prompts": [{"text": "안녕", "media": None}],
    }
    assert split_text_messages(None, "ahhaohho") == []


def test_split_text_messages_keeps_media_when_text_is_only_delimiters():
    """
    [GREEN]
    텍스트가 구분자뿐이어도 첨부된 미디어는 텍스트 없는 메시지 하나로 남습니다.
    """
    media = [{"title": None, "image": [], "imageDescription": None}]

    messages = split_text_messages("\\", "ahhaohho", media)

    assert len(messages) == 1
    assert messages[0]["prompts"] == [{"text": None, "media": media}]
    assert messages[0]["type"] == "text+image"
    assert split_text_messages("\\ ＼", "ahhaohho") == []


def test_chat_button_module(attachment):
    """
    [GREEN]
    버튼 반응형 모듈: 매개자 대사(이미지 포함) + 유저 선택지 메시지.
    """
    raw = {
        "id": "recChat1",
        CHAT_MODULE_FIELD.format(i=1): "모듈1 : 버튼 반응형",
        CHAT_FIELDS["button_text"].format(i=1): "어떤 색이 좋아?\\골라줘",
        CHAT_FIELDS["button_image"].format(i=1): [attachment],
        CHAT_FIELDS["button_option_text"].format(i=1, n=1): "빨강",
        CHAT_FIELDS["button_option_text"].format(i=1, n=2): "파랑",
    }

    entity = ChatTransformer().transform(raw)

    assert entity["chatId"] == "recChat1"
    assert entity["step"] == "challenge"
    first, second, options = entity["chat"]
    assert first["type"] == "text+image"
    assert first["prompts"][0]["media"][0]["image"][0]["defaultUrl"] == attachment["url"]
    assert second["prompts"][0] == {"text": "골라줘", "media": None}
    assert options["talker"] == "user"
    assert options["hasOpts"] is True
    assert options["type"] == "text"
    assert [p["text"] for p in options["prompts"]] == ["빨강", "파랑"]


def test_chat_interaction_module_duplicates_button_image(attachment):
    """
    [GREEN]
    인터랙션형 모듈에서 응답 이미지가 없으면 버튼 이미지가 두 번 들어갑니다.
    """
    raw = {
        "id": "recChat2",
        CHAT_MODULE_FIELD.format(i=1): "모듈2 : 인터랙션형",
        CHAT_FIELDS["interaction_text"].format(i=1): "하나를 골라봐",
        CHAT_FIELDS["interaction_title"].format(i=1, n=1): "고양이",
        CHAT_FIELDS["interaction_button"].format(i=1, n=1): [attachment],
        CHAT_FIELDS["interaction_response_text"].format(i=1, n=1): "야옹",
    }

    entity = ChatTransformer().transform(raw)

    mediator, user = entity["chat"]
    assert mediator["prompts"][0]["text"] == "하나를 골라봐"
    assert user["talker"] == "prompt"
    media = user["prompts"][0]["media"][0]
    assert media["title"] == "고양이"
    assert media["imageDescription"] == "야옹"
    assert len(media["image"]) == 2
    assert media["image"][0] == media["image"][1]
    assert media["image"][0] is not media["image"][1]


def test_chat_typing_module_interleaves_user_typing():
    """
    [GREEN]
    타이핑형 모듈: 나뉜 매개자 대사 사이와 끝에 userTyping 메시지가 들어갑니다.
    """
    raw = {
        "id": "recChat3",
        CHAT_MODULE_FIELD.format(i=2): "모듈3 : 타이핑형",
        CHAT_FIELDS["typing_text"].format(i=2): "이름이 뭐야?＼알려줘",
    }

    chat = ChatTransformer().transform(raw)["chat"]

    assert [m["type"] for m in chat] == ["text", "userTyping", "text", "userTyping"]
    assert chat[0]["prompts"][0]["text"] == "이름이 뭐야?"
    assert chat[2]["prompts"][0]["text"] == "알려줘"


def test_chat_end_message_with_octostudio():
    """
    [GREEN]
    종료 메시지의 마지막 조각에 옥토스튜디오 항목이 붙고 type이 text+octo가 됩니다.
    """
    raw = {
        "id": "recChat4",
        CHAT_FIELDS["end_text"]: "수고했어\\또 만나",
        CHAT_FIELDS["end_media"]: [
            {"url": "https://cdn.test/a.octostudio", "filename": "[게임]달리기.octostudio"},
            {"url": "https://cdn.test/b.png", "filename": "b.png", "type": "image/png"},
        ],
    }

    chat = ChatTransformer().transform(raw)["chat"]

    assert [m["talker"] for m in chat] == ["endChat", "endChat"]
    assert chat[0]["type"] == "text"
    assert chat[1]["type"] == "text+octo"
    assert chat[1]["prompts"][0]["octo"] == [
        {
            "category": "게임",
            "title": "달리기",
            "url": "https://cdn.test/a.octostudio",
            "thumbnail": DEFAULT_OCTO_THUMBNAIL,
        }
    ]


def test_octo_item_without_category():
    item = octo_item(
        {
            "url": "https://cdn.test/x.octostudio",
            "filename": "점프.octostudio",
            "thumbnails": {"large": {"url": "https://cdn.test/x.jpg"}},
        }
    )

    assert item["category"] == DEFAULT_OCTO_CATEGORY
    assert item["title"] == "점프"
    assert item["thumbnail"] == "https://cdn.test/x.jpg"


def test_split_final_pass_skips_option_messages():
    """
    [GREEN]
    선택지 메시지(hasOpts)는 나누지 않고, 일반 메시지의 첫 조각만 원래 미디어를 유지합니다.
    """
    chat = [
        {"type": "text+image", "talker": "ahhaohho", "hasOpts": False, "prompts": [{"text": "A\\B", "media": "M"}]},
        {"type": "text", "talker": "user", "hasOpts": True, "prompts": [{"text": "X\\Y", "media": None}]},
    ]

    result = split_final_pass(chat)

    assert len(result) == 3
    assert result[0]["prompts"] == [{"text": "A", "media": "M"}]
    assert result[1]["prompts"] == [{"text": "B", "media": None}]
    assert result[2] is chat[1]


def test_open_chat_dialogues():
    """
    [GREEN]
    오픈 대화: 대화 1(매개자 대사 + 유저 선택지) → 대화 2 → 대화 3 순서로 메시지가 만들어집니다.
    """
    f = OPEN_CHAT_FIELDS
    raw = {
        "id": "recOpen1",
        f["speech"].format(d=1, u=1): "안녕\\반가워",
        f["speaker"].format(d=1, u=1): "매개자",
        f["response_speaker"].format(d=1, u=1): "유저-옵션 선택",
        f["response_option"].format(d=1, u=1, option="A"): "좋아",
        f["response_option"].format(d=1, u=1, option="B"): "싫어",
        f["response"].format(d=1, u=1): "건너뛰는 응답",
        f["d2_option"].format(n=1): "옵션1",
        f["d2_mediator_response"].format(n=1): "응답1",
        f["d2_confirm"]: "맞아?",
        f["speech"].format(d=3, u=1): "끝!",
        f["response"].format(d=3, u=1): "안녕",
        f["response_speaker"].format(d=3, u=1): "유저",
    }

    entity = OpenChatTransformer().transform(raw)

    assert entity["chatIdx"] == "recOpen1"
    assert entity["step"] == "openChat"
    texts = [(m["talker"], [p["text"] for p in m["prompts"]]) for m in entity["chat"]]
    assert texts == [
        ("ahhaohho", ["안녕"]),
        ("ahhaohho", ["반가워"]),
        ("user", ["좋아", "싫어"]),
        ("user", ["옵션1"]),
        ("ahhaohho", ["응답1"]),
        ("ahhaohho", ["맞아?"]),
        ("ahhaohho", ["끝!"]),
        ("user", ["안녕"]),
    ]
