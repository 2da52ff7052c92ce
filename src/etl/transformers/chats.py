"""
매개자-유저 대화(챌린지 대화 / 월드맵 오픈 대화) 변환기.

대화는 `{type, talker, hasOpts, prompts: [{text, media}]}` 메시지의 배열로 표현됩니다.
대사 텍스트 안의 백슬래시(일반/전각)는 "여기서 메시지를 나눈다"는 의미이며,
나뉜 메시지 중 첫 번째만 원래의 미디어를 유지합니다.
"""

import re
from typing import Any

from src.etl.interfaces import RawRecord
from src.etl.transformers.base import (
    Entity,
    Transformer,
    first_attachment,
    has_delimiter,
    media_block,
    require,
    split_message_text,
)
from src.etl.transformers.fields import (
    CHAT_FIELDS,
    CHAT_MODULE_BUTTON,
    CHAT_MODULE_COUNT,
    CHAT_MODULE_FIELD,
    CHAT_MODULE_INTERACTION,
    CHAT_MODULE_TYPING,
    OPEN_CHAT_FIELDS,
    OPEN_CHAT_SPEAKER_MEDIATOR,
    OPEN_CHAT_SPEAKER_USER,
    OPEN_CHAT_SPEAKER_USER_OPTION,
)

MEDIATOR = "ahhaohho"
USER = "user"
PROMPT = "prompt"
END_CHAT = "endChat"

DEFAULT_OCTO_THUMBNAIL = "https://cdn-world.ahhaohho.com/default-octostudio-thumb.jpg"
DEFAULT_OCTO_CATEGORY = "옥토스튜디오"

_OCTO_NAME = re.compile(r"^\[(?P<category>.*?)\](?P<title>.*)\.octostudio$")


def message(
    talker: str,
    prompts: list[Entity],
    msg_type: str = "text",
    has_opts: bool = False,
) -> Entity:
    return {"type": msg_type, "talker": talker, "hasOpts": has_opts, "prompts": prompts}


def prompt(text: str | None, media: Any = None) -> Entity:
    return {"text": text, "media": media}


def split_text_messages(
    text: str | None,
    talker: str,
    media: Any = None,
    media_type: str = "text+image",
) -> list[Entity]:
    """
    텍스트를 구분자로 나눠 연속 메시지로 만듭니다.

    Args:
        text: 대사 텍스트
        talker: 화자
        media: 첫 메시지에만 붙는 미디어
        media_type: 미디어가 있을 때 첫 메시지의 type

    Returns:
        list[Entity]: 메시지 목록 (텍스트도 미디어도 없으면 빈 목록)
    """
    parts: list[str | None] = list(split_message_text(text)) if has_delimiter(text) else [text]
    if not parts:
        parts = [None]
    if parts == [None] and media is None:
        return []

    messages = [message(talker, [prompt(parts[0], media)], media_type if media else "text")]
    messages.extend(message(talker, [prompt(part)]) for part in parts[1:])
    return messages


def chat_image(attachment: dict[str, Any] | None) -> Entity | None:
    return media_block(attachment, sound=False, keep_mime=True)


def chat_media(attachment: dict[str, Any] | None) -> list[Entity] | None:
    """첨부파일 하나를 대화 미디어 DTO(`[{title, image, imageDescription}]`)로 감쌉니다."""
    image = chat_image(attachment)
    if image is None:
        return None
    return [{"title": None, "image": [image], "imageDescription": None}]


def typing_message() -> Entity:
    return message(USER, [prompt(None)], "userTyping")


def octo_item(attachment: dict[str, Any]) -> Entity:
    """옥토스튜디오 첨부파일을 `{category, title, url, thumbnail}`로 변환합니다."""
    filename = attachment.get("filename") or ""
    match = _OCTO_NAME.match(filename)
    if match:
        category = match.group("category").strip() or DEFAULT_OCTO_CATEGORY
        title = match.group("title").strip()
    else:
        category = DEFAULT_OCTO_CATEGORY
        title = filename.removesuffix(".octostudio").strip()

    thumbnails = attachment.get("thumbnails") or {}
    thumbnail = (
        (thumbnails.get("large") or {}).get("url")
        or (thumbnails.get("full") or {}).get("url")
        or DEFAULT_OCTO_THUMBNAIL
    )
    return {
        "category": category,
        "title": title or "Octostudio 파일",
        "url": attachment.get("url"),
        "thumbnail": thumbnail,
    }


def is_octo(attachment: Any) -> bool:
    if not isinstance(attachment, dict):
        return False
    return attachment.get("media_type") == "octostudio" or (
        attachment.get("filename") or ""
    ).endswith(".octostudio")


class ChatTransformer(Transformer):
    """
    챌린지 대화 레코드 변환기.

    모듈 선택 1~15를 순서대로 읽어 모듈 종류(버튼 반응형 / 인터랙션형 / 타이핑형)별로
    매개자 대사와 유저 응답 메시지를 만들고, 마지막에 대화 종료 메시지를 붙입니다.
    """

    name = "chats"

    def build(self, raw: RawRecord) -> Entity:
        chat_id = require(raw, "id")
        chat: list[Entity] = []

        for i in range(1, CHAT_MODULE_COUNT + 1):
            module = raw.get(CHAT_MODULE_FIELD.format(i=i))
            if module == CHAT_MODULE_BUTTON:
                chat.extend(self._button_mediator(raw, i))
                chat.extend(self._button_user(raw, i))
            elif module == CHAT_MODULE_INTERACTION:
                chat.extend(
                    split_text_messages(
                        raw.get(CHAT_FIELDS["interaction_text"].format(i=i)), MEDIATOR
                    )
                )
                chat.extend(self._interaction_user(raw, i))
            elif module == CHAT_MODULE_TYPING:
                chat.extend(self._typing_mediator(raw, i))
                chat.append(typing_message())

        chat.extend(self._end_messages(raw))
        return {"chatId": chat_id, "step": "challenge", "chat": chat}

    @staticmethod
    def _button_mediator(raw: RawRecord, i: int) -> list[Entity]:
        text = raw.get(CHAT_FIELDS["button_text"].format(i=i))
        image = first_attachment(raw.get(CHAT_FIELDS["button_image"].format(i=i)))
        if not text and not image:
            return []
        return split_text_messages(text, MEDIATOR, chat_media(image))

    @staticmethod
    def _button_user(raw: RawRecord, i: int) -> list[Entity]:
        prompts: list[Entity] = []
        has_image = has_text = False
        for n in (1, 2):
            content = raw.get(CHAT_FIELDS["button_option_text"].format(i=i, n=n))
            image = first_attachment(
                raw.get(CHAT_FIELDS["button_option_image"].format(i=i, n=n))
            )
            if not content and not image:
                continue
            media = chat_media(image)
            has_image = has_image or media is not None
            has_text = has_text or bool(content)
            prompts.append(prompt(content or None, media))

        if not prompts:
            return []
        if has_image and has_text:
            msg_type = "text+image"
        elif has_image:
            msg_type = "image"
        else:
            msg_type = "text"
        return [message(USER, prompts, msg_type, has_opts=True)]

    @staticmethod
    def _interaction_user(raw: RawRecord, i: int) -> list[Entity]:
        medias: list[Entity] = []
        for n in range(1, 5):
            title = raw.get(CHAT_FIELDS["interaction_title"].format(i=i, n=n))
            button = first_attachment(
                raw.get(CHAT_FIELDS["interaction_button"].format(i=i, n=n))
            )
            response_image = first_attachment(
                raw.get(CHAT_FIELDS["interaction_response_image"].format(i=i, n=n))
            )
            response_text = raw.get(CHAT_FIELDS["interaction_response_text"].format(i=i, n=n))
            if not (button or response_image or response_text):
                continue

            images = [img for img in (chat_image(button), chat_image(response_image)) if img]
            # 응답 이미지가 없으면 버튼 이미지를 응답 이미지 자리에도 사용
            if len(images) == 1 and not response_image:
                images.append(
                    {**images[0], "thumbnail": dict(images[0]["thumbnail"])}
                )
            medias.append(
                {
                    "title": title or None,
                    "image": images,
                    "imageDescription": response_text or None,
                }
            )

        if not medias:
            return []
        return [message(PROMPT, [prompt(None, medias)], "text+image")]

    @staticmethod
    def _typing_mediator(raw: RawRecord, i: int) -> list[Entity]:
        """타이핑형 매개자 대사. 나뉜 대사 사이마다 유저 타이핑 메시지를 끼워 넣습니다."""
        text = raw.get(CHAT_FIELDS["typing_text"].format(i=i))
        if not text:
            return []
        parts = split_message_text(text) if has_delimiter(text) else [text]

        messages: list[Entity] = []
        for index, part in enumerate(parts):
            messages.append(message(PROMPT, [prompt(part)]))
            if index < len(parts) - 1:
                messages.append(typing_message())
        return messages

    @staticmethod
    def _end_messages(raw: RawRecord) -> list[Entity]:
        """대화 종료 메시지. 옥토스튜디오 첨부가 있으면 마지막 메시지에 octo 항목을 붙입니다."""
        text = raw.get(CHAT_FIELDS["end_text"])
        if not text:
            return []

        attachments = raw.get(CHAT_FIELDS["end_media"]) or []
        octo_items = [octo_item(a) for a in attachments if is_octo(a)]
        messages = split_text_messages(text, END_CHAT)
        if octo_items and messages:
            last = messages[-1]
            last["type"] = "text+octo"
            last["prompts"][0]["octo"] = octo_items
        return messages


def split_final_pass(chat: list[Entity]) -> list[Entity]:
    """
    선택지가 아닌 메시지의 첫 프롬프트 텍스트에 남은 구분자를 연속 메시지로 펼칩니다.

    첫 메시지는 원래 프롬프트(미디어 포함)를 유지하고, 이후 메시지는 텍스트만 가집니다.
    """
    result: list[Entity] = []
    for msg in chat:
        prompts = msg.get("prompts") or []
        if msg.get("hasOpts") or not prompts:
            result.append(msg)
            continue

        first = prompts[0]
        parts = split_message_text(first.get("text")) if has_delimiter(first.get("text")) else []
        if len(parts) <= 1:
            result.append(msg)
            continue

        result.append({**msg, "prompts": [{**first, "text": parts[0]}]})
        result.extend({**msg, "prompts": [prompt(part)]} for part in parts[1:])
    return result


class OpenChatTransformer(Transformer):
    """
    월드맵 오픈 대화(매개자-유저 대화) 변환기.

    대화 1 → 대화 2 → 대화 3 순으로 메시지를 만든 뒤, 전체 대화에 구분자 분리를 한 번 더 적용합니다.
    """

    name = "open_chats"

    def build(self, raw: RawRecord) -> Entity:
        chat_idx = require(raw, "id")
        chat = [
            *self._dialogue(raw, 1),
            *self._dialogue_two(raw),
            *self._dialogue(raw, 3),
        ]
        return {"chatIdx": chat_idx, "step": "openChat", "chat": split_final_pass(chat)}

    @staticmethod
    def _dialogue(raw: RawRecord, d: int) -> list[Entity]:
        """대화 1/3: 발화 1~3. 유저 선택지는 대화당 한 번만 처리하며, 그 발화의 일반 응답은 건너뜁니다."""
        f = OPEN_CHAT_FIELDS
        messages: list[Entity] = []
        options_done = False

        for u in range(1, 4):
            speech = raw.get(f["speech"].format(d=d, u=u))
            speaker = raw.get(f["speaker"].format(d=d, u=u))
            if speech and (not speaker or speaker == OPEN_CHAT_SPEAKER_MEDIATOR):
                messages.extend(split_text_messages(speech, MEDIATOR))

            response_speaker = raw.get(f["response_speaker"].format(d=d, u=u))
            if not options_done and response_speaker == OPEN_CHAT_SPEAKER_USER_OPTION:
                options = [
                    prompt(raw[key])
                    for option in ("A", "B")
                    if raw.get(key := f["response_option"].format(d=d, u=u, option=option))
                ]
                if options:
                    messages.append(message(USER, options, has_opts=True))
                    options_done = True
                    continue

            response = raw.get(f["response"].format(d=d, u=u))
            if response and response_speaker == OPEN_CHAT_SPEAKER_USER:
                messages.append(message(USER, [prompt(response)]))

        return messages

    @staticmethod
    def _dialogue_two(raw: RawRecord) -> list[Entity]:
        f = OPEN_CHAT_FIELDS
        messages: list[Entity] = []

        options = [
            prompt(raw[key])
            for n in range(1, 4)
            if raw.get(key := f["d2_option"].format(n=n))
        ]
        if options:
            messages.append(message(USER, options, has_opts=True))

        responses = [
            prompt(raw[key])
            for n in range(1, 4)
            if raw.get(key := f["d2_mediator_response"].format(n=n))
        ]
        if responses:
            messages.append(message(MEDIATOR, responses))

        confirm = raw.get(f["d2_confirm"])
        if confirm:
            messages.append(message(MEDIATOR, [prompt(confirm)]))

        user_responses = [
            prompt(raw[key])
            for option in ("A", "B")
            if raw.get(key := f["d2_user_response"].format(option=option))
        ]
        if user_responses:
            messages.append(message(USER, user_responses, has_opts=True))

        return messages
