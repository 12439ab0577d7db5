"""Review prompt table and composer.

Instructions live in one table keyed by language; each language pack holds
the prohibitions, the writing rules and one style block per writer style
(guidance, length budget, worked examples). ``resolve_cell`` looks up a
``(language, style)`` pair and falls back to the base language when the
requested one is not in the table.

Selected tag labels only ever appear in the user content. The system
instructions talk about "the tags" generically so the model is never handed
a label inside a rule that also tells it not to copy labels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .languages import resolve_language
from .models import (
    AgeBand,
    EffectiveSelection,
    Gender,
    PersonaAttributes,
    TagCatalog,
    TagCategory,
    VisitFrequency,
    WriterStyle,
)


@dataclass(slots=True, frozen=True)
class LengthBudget:
    minimum: int
    maximum: int
    unit: Literal["chars", "words"]

    def __post_init__(self) -> None:
        if not 0 < self.minimum < self.maximum:
            raise ValueError(f"Invalid length budget {self.minimum}-{self.maximum}")


@dataclass(slots=True, frozen=True)
class StyleBlock:
    guidance: str
    budget: LengthBudget
    examples: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class PersonaPhrases:
    header: str
    separator: str
    field_labels: tuple[str, str, str]  # gender, age, visit frequency
    genders: dict[Gender, str]
    ages: dict[AgeBand, str]
    frequencies: dict[VisitFrequency, str]
    frequency_hints: dict[VisitFrequency, str]


@dataclass(slots=True, frozen=True)
class LanguagePack:
    code: str
    default_category: str
    role: str
    prohibitions_heading: str
    prohibitions: tuple[str, ...]
    rules_heading: str
    rules: tuple[str, ...]
    style_heading: str
    length_template: str
    examples_heading: str
    styles: dict[WriterStyle, StyleBlock]
    persona: PersonaPhrases
    group_labels: dict[TagCategory, str]
    connector: str
    user_intro: str
    context_template: str
    output_instruction: str


@dataclass(slots=True, frozen=True)
class PromptCell:
    language: str
    prohibitions: tuple[str, ...]
    style_block: StyleBlock
    length_budget: LengthBudget


@dataclass(slots=True, frozen=True)
class ComposedPrompt:
    system_instructions: str
    user_content: str
    language: str
    style: WriterStyle


def _chars(minimum: int, maximum: int) -> LengthBudget:
    return LengthBudget(minimum, maximum, "chars")


def _words(minimum: int, maximum: int) -> LengthBudget:
    return LengthBudget(minimum, maximum, "words")


JA = LanguagePack(
    code="ja",
    default_category="店舗",
    role=(
        "あなたは{category}を利用した一般のお客様です。"
        "選択されたタグだけを手がかりに、Googleマップに投稿する口コミを書いてください。"
    ),
    prohibitions_heading="【禁止事項】",
    prohibitions=(
        "比喩や詩的な表現、大げさな言い回しは使わない。",
        "「総じて」「全体的に」「結論として」のような、AIがまとめたような言い回しを使わない。",
        "タグの文言をそのまま書き写さない。タグが示す体験を自分の言葉で具体的に言い換える。",
        "店名・地名などの固有名詞を入れない。「このお店」「ここ」などの指示語を使う。",
        "「〜に行きました」「初めて訪問」のような来店報告から始めない。いきなり感想から書く。",
        "選択されていない要素（メニュー名、価格、雰囲気など）を推測で付け足さない。",
    ),
    rules_heading="【書き方】",
    rules=(
        "良かった点 → 普通だった点（必要なら軽く） → イマイチだった点 の順で、ひと続きの文章にする。",
        "良かった点がなければ無理に褒めない。イマイチな点は正直に、ただし攻撃的にならないように書く。",
        "箇条書きにしない。「〜でした」を連発しない。",
    ),
    style_heading="【文体】",
    length_template="長さ: {minimum}〜{maximum}文字程度。",
    examples_heading="例:",
    styles={
        WriterStyle.SHORT: StyleBlock(
            guidance="ごく短く、ぶっきらぼうなくらいでよい。形容詞は最小限にする。",
            budget=_chars(20, 50),
            examples=(
                "料理はおいしかった。待ち時間は長め。",
                "スタッフさんが丁寧。また来ます。",
            ),
        ),
        WriterStyle.CASUAL: StyleBlock(
            guidance="友人に話すような、くだけた話し言葉で書く。",
            budget=_chars(60, 120),
            examples=(
                "ごはんがちゃんとおいしくて、味付けもちょうどよかったです。"
                "ただ、注文してから出てくるまでが少し長くて、そこだけ気になりました。",
            ),
        ),
        WriterStyle.DETAILED: StyleBlock(
            guidance="落ち着いた説明調で、具体的に書く。詩的な表現にはしない。",
            budget=_chars(130, 220),
            examples=(
                "素材の味がわかる味付けで、最後まで飽きずに食べられました。"
                "スタッフの方は質問にもすぐ答えてくれて安心感があります。"
                "一方で、混む時間帯は提供まで二十分ほどかかったので、"
                "時間に余裕があるときに利用するのがよさそうです。",
            ),
        ),
    },
    persona=PersonaPhrases(
        header="【あなたのプロフィール】",
        separator="、",
        field_labels=("性別", "年代", "来店頻度"),
        genders={Gender.MALE: "男性", Gender.FEMALE: "女性", Gender.OTHER: "その他"},
        ages={
            AgeBand.TEENS: "10代",
            AgeBand.TWENTIES: "20代",
            AgeBand.THIRTIES: "30代",
            AgeBand.FORTIES: "40代",
            AgeBand.FIFTIES: "50代",
            AgeBand.SIXTIES_PLUS: "60代以上",
        },
        frequencies={
            VisitFrequency.FIRST_TIME: "初めて",
            VisitFrequency.OCCASIONAL: "数回",
            VisitFrequency.REGULAR: "常連",
        },
        frequency_hints={
            VisitFrequency.FIRST_TIME: "初めて利用したときの第一印象として書く。",
            VisitFrequency.OCCASIONAL: "何度か利用した経験をふまえて書く。",
            VisitFrequency.REGULAR: "通い慣れた常連として、いつもの安心感や居心地のよさがにじむように書く。",
        },
    ),
    group_labels={
        TagCategory.GOOD: "良かった点",
        TagCategory.NEUTRAL: "普通だった点",
        TagCategory.BAD: "イマイチだった点",
    },
    connector="、",
    user_intro=(
        "次のタグは、口コミに書く内容の種です。"
        "タグの言葉をそのまま使わず、それぞれを具体的な体験として言い換えてください。"
    ),
    context_template="{tag}（{context}）",
    output_instruction="口コミの本文のみを出力してください。",
)

EN = LanguagePack(
    code="en",
    default_category="store",
    role=(
        "You are an ordinary customer of a {category}. "
        "Write a Google Maps review based only on the selected tags."
    ),
    prohibitions_heading="Never:",
    prohibitions=(
        "Use ornate, poetic or metaphorical language.",
        'Use summary or AI-sounding phrases such as "overall", "in conclusion" or "all in all".',
        "Copy a tag's wording verbatim. Describe the experience the tag implies in your own words.",
        'Mention proper nouns such as the store name or a place name. Say "this place" or "here".',
        'Open by announcing the visit ("I went to...", "First time visiting..."). '
        "Start with the impression itself.",
        "Add anything that was not selected (dishes, prices, atmosphere) by guessing.",
    ),
    rules_heading="How to write:",
    rules=(
        "Go from liked points to neutral points (briefly, optional) to disliked points "
        "as one flowing text.",
        "If nothing was liked, do not force praise. Be honest about disliked points "
        "without being harsh.",
        "No bullet points or lists.",
    ),
    style_heading="Style:",
    length_template="Length: about {minimum}-{maximum} words.",
    examples_heading="Examples:",
    styles={
        WriterStyle.SHORT: StyleBlock(
            guidance="Very brief and blunt. Keep adjectives to a minimum.",
            budget=_words(8, 25),
            examples=(
                "Food was good. Service was slow.",
                "Friendly staff. Would come back.",
            ),
        ),
        WriterStyle.CASUAL: StyleBlock(
            guidance="Conversational, like telling a friend about it.",
            budget=_words(30, 60),
            examples=(
                "The food here was really tasty and the portions felt right. "
                "The only downside was the wait, it took a while before anything came out.",
            ),
        ),
        WriterStyle.DETAILED: StyleBlock(
            guidance="Plain and informative, with concrete detail. Not poetic.",
            budget=_words(65, 110),
            examples=(
                "The dishes were well seasoned and stayed enjoyable to the last bite. "
                "Staff answered questions quickly and checked in without hovering. "
                "At busy times the food took around twenty minutes to arrive, "
                "so it is better to come when you are not in a hurry.",
            ),
        ),
    },
    persona=PersonaPhrases(
        header="About you:",
        separator=", ",
        field_labels=("Gender", "Age", "Visits"),
        genders={Gender.MALE: "male", Gender.FEMALE: "female", Gender.OTHER: "other"},
        ages={
            AgeBand.TEENS: "teens",
            AgeBand.TWENTIES: "20s",
            AgeBand.THIRTIES: "30s",
            AgeBand.FORTIES: "40s",
            AgeBand.FIFTIES: "50s",
            AgeBand.SIXTIES_PLUS: "60s or older",
        },
        frequencies={
            VisitFrequency.FIRST_TIME: "first visit",
            VisitFrequency.OCCASIONAL: "a few visits",
            VisitFrequency.REGULAR: "regular",
        },
        frequency_hints={
            VisitFrequency.FIRST_TIME: "Write it as a first impression.",
            VisitFrequency.OCCASIONAL: "Write from having been here a few times.",
            VisitFrequency.REGULAR: "Write as a regular, letting familiarity and comfort come through.",
        },
    ),
    group_labels={
        TagCategory.GOOD: "Liked",
        TagCategory.NEUTRAL: "Neutral",
        TagCategory.BAD: "Disliked",
    },
    connector=", ",
    user_intro=(
        "The tags below are seed ideas for the review. "
        "Paraphrase each one as an experience; never repeat a tag word for word."
    ),
    context_template="{tag} ({context})",
    output_instruction="Output only the review text.",
)

ZH = LanguagePack(
    code="zh",
    default_category="店铺",
    role="你是一位光顾过{category}的普通顾客。请只根据所选标签，写一条发布在谷歌地图上的评价。",
    prohibitions_heading="【禁止事项】",
    prohibitions=(
        "不要使用比喻、诗意或夸张的修辞。",
        "不要使用“总的来说”“综上所述”“总之”之类像AI总结的说法。",
        "不要照抄标签原文，要用自己的话描述标签所代表的体验。",
        "不要出现店名、地名等专有名词，用“这家店”“这里”来指代。",
        "不要用“我去了……”“第一次来……”之类的到店说明开头，直接写感受。",
        "不要凭推测补充未选择的内容（菜名、价格、氛围等）。",
    ),
    rules_heading="【写法】",
    rules=(
        "按“满意的地方 → 一般的地方（可简单带过）→ 不满意的地方”的顺序，写成连贯的一段话。",
        "没有满意的地方就不要勉强夸奖；不满意的地方要如实写，但不要带攻击性。",
        "不要使用列表或分点。",
    ),
    style_heading="【文风】",
    length_template="长度：约{minimum}～{maximum}个字。",
    examples_heading="示例：",
    styles={
        WriterStyle.SHORT: StyleBlock(
            guidance="非常简短，直截了当，尽量少用形容词。",
            budget=_chars(15, 40),
            examples=("菜好吃，上菜慢。", "服务很周到，还会再来。"),
        ),
        WriterStyle.CASUAL: StyleBlock(
            guidance="口语化，像跟朋友聊天一样。",
            budget=_chars(50, 100),
            examples=(
                "这里的菜味道挺不错，分量也刚好。就是等菜的时间有点长，这一点稍微有些在意。",
            ),
        ),
        WriterStyle.DETAILED: StyleBlock(
            guidance="平实、信息充分，写得具体，但不要诗意化。",
            budget=_chars(110, 180),
            examples=(
                "菜的调味能吃出食材本身的味道，一直吃到最后都不腻。"
                "店员回答问题很及时，让人放心。"
                "不过高峰时段上菜要等二十分钟左右，建议时间宽裕时再来。",
            ),
        ),
    },
    persona=PersonaPhrases(
        header="【你的资料】",
        separator="，",
        field_labels=("性别", "年龄段", "到店频率"),
        genders={Gender.MALE: "男性", Gender.FEMALE: "女性", Gender.OTHER: "其他"},
        ages={
            AgeBand.TEENS: "10多岁",
            AgeBand.TWENTIES: "20多岁",
            AgeBand.THIRTIES: "30多岁",
            AgeBand.FORTIES: "40多岁",
            AgeBand.FIFTIES: "50多岁",
            AgeBand.SIXTIES_PLUS: "60岁以上",
        },
        frequencies={
            VisitFrequency.FIRST_TIME: "第一次",
            VisitFrequency.OCCASIONAL: "来过几次",
            VisitFrequency.REGULAR: "常客",
        },
        frequency_hints={
            VisitFrequency.FIRST_TIME: "以第一次来的第一印象来写。",
            VisitFrequency.OCCASIONAL: "结合来过几次的经验来写。",
            VisitFrequency.REGULAR: "以常客的身份来写，体现熟悉感和安心感。",
        },
    ),
    group_labels={
        TagCategory.GOOD: "满意的地方",
        TagCategory.NEUTRAL: "一般的地方",
        TagCategory.BAD: "不满意的地方",
    },
    connector="、",
    user_intro="以下标签是评价内容的线索。请把每个标签换成具体的体验来描述，不要照搬标签原文。",
    context_template="{tag}（{context}）",
    output_instruction="只输出评价正文。",
)

KO = LanguagePack(
    code="ko",
    default_category="매장",
    role=(
        "당신은 {category}을(를) 이용한 일반 손님입니다. "
        "선택된 태그만을 바탕으로 구글 지도에 올릴 리뷰를 작성하세요."
    ),
    prohibitions_heading="【금지 사항】",
    prohibitions=(
        "비유나 시적인 표현, 과장된 말투를 쓰지 마세요.",
        '"전반적으로", "결론적으로", "종합하면" 같은 AI가 정리한 듯한 표현을 쓰지 마세요.',
        "태그 문구를 그대로 옮겨 쓰지 말고, 태그가 뜻하는 경험을 자신의 말로 풀어 쓰세요.",
        '가게 이름이나 지명 같은 고유명사를 넣지 마세요. "이 가게", "여기" 같은 지시어를 쓰세요.',
        '"~에 다녀왔어요", "처음 방문했어요" 같은 방문 보고로 시작하지 말고 바로 감상부터 쓰세요.',
        "선택되지 않은 요소(메뉴 이름, 가격, 분위기 등)를 추측해서 덧붙이지 마세요.",
    ),
    rules_heading="【작성 방법】",
    rules=(
        "좋았던 점 → 보통이었던 점(필요하면 가볍게) → 아쉬웠던 점 순서로 자연스럽게 이어지는 글로 쓰세요.",
        "좋았던 점이 없으면 억지로 칭찬하지 마세요. 아쉬운 점은 솔직하게 쓰되 공격적이지 않게 쓰세요.",
        "글머리 기호나 목록을 쓰지 마세요.",
    ),
    style_heading="【문체】",
    length_template="길이: 약 {minimum}~{maximum}자.",
    examples_heading="예시:",
    styles={
        WriterStyle.SHORT: StyleBlock(
            guidance="아주 짧고 무뚝뚝하게. 형용사는 최소한으로.",
            budget=_chars(20, 50),
            examples=("음식 맛있음. 대기 시간은 김.", "직원분들 친절해요. 또 올게요."),
        ),
        WriterStyle.CASUAL: StyleBlock(
            guidance="친구에게 말하듯 편한 구어체로.",
            budget=_chars(60, 130),
            examples=(
                "음식이 진짜 맛있었고 양도 딱 적당했어요. "
                "다만 주문하고 나오기까지 좀 오래 걸려서 그 점만 아쉬웠어요.",
            ),
        ),
        WriterStyle.DETAILED: StyleBlock(
            guidance="담백하고 정보가 충분하게, 구체적으로. 시적인 표현은 쓰지 마세요.",
            budget=_chars(140, 240),
            examples=(
                "재료 맛이 살아 있는 간이라 끝까지 질리지 않고 먹었습니다. "
                "직원분들이 질문에 바로바로 답해 줘서 편했습니다. "
                "다만 붐비는 시간에는 음식이 나오기까지 20분 정도 걸려서, "
                "시간 여유가 있을 때 가는 게 좋겠습니다.",
            ),
        ),
    },
    persona=PersonaPhrases(
        header="【프로필】",
        separator=", ",
        field_labels=("성별", "연령대", "방문 빈도"),
        genders={Gender.MALE: "남성", Gender.FEMALE: "여성", Gender.OTHER: "기타"},
        ages={
            AgeBand.TEENS: "10대",
            AgeBand.TWENTIES: "20대",
            AgeBand.THIRTIES: "30대",
            AgeBand.FORTIES: "40대",
            AgeBand.FIFTIES: "50대",
            AgeBand.SIXTIES_PLUS: "60대 이상",
        },
        frequencies={
            VisitFrequency.FIRST_TIME: "첫 방문",
            VisitFrequency.OCCASIONAL: "몇 번 방문",
            VisitFrequency.REGULAR: "단골",
        },
        frequency_hints={
            VisitFrequency.FIRST_TIME: "처음 이용했을 때의 첫인상으로 쓰세요.",
            VisitFrequency.OCCASIONAL: "몇 번 이용해 본 경험을 바탕으로 쓰세요.",
            VisitFrequency.REGULAR: "단골로서 익숙함과 편안함이 느껴지도록 쓰세요.",
        },
    ),
    group_labels={
        TagCategory.GOOD: "좋았던 점",
        TagCategory.NEUTRAL: "보통이었던 점",
        TagCategory.BAD: "아쉬웠던 점",
    },
    connector=", ",
    user_intro=(
        "아래 태그는 리뷰 내용의 단서입니다. "
        "태그 문구를 그대로 쓰지 말고 각각을 구체적인 경험으로 바꿔 표현하세요."
    ),
    context_template="{tag}({context})",
    output_instruction="리뷰 본문만 출력하세요.",
)

ES = LanguagePack(
    code="es",
    default_category="establecimiento",
    role=(
        "Eres un cliente común de un {category}. "
        "Escribe una reseña para Google Maps basada únicamente en las etiquetas seleccionadas."
    ),
    prohibitions_heading="Nunca:",
    prohibitions=(
        "Uses lenguaje poético, metafórico ni rebuscado.",
        'Uses frases de resumen que suenen a IA como "en general", "en conclusión" o "en resumen".',
        "Copies literalmente el texto de una etiqueta. Describe con tus palabras la experiencia "
        "que implica.",
        'Menciones nombres propios como el nombre del local o de un lugar. Di "este sitio" o "aquí".',
        'Empieces anunciando la visita ("Fui a...", "Primera vez que vengo..."). '
        "Empieza directamente por la impresión.",
        "Añadas por suposición nada que no se haya seleccionado (platos, precios, ambiente).",
    ),
    rules_heading="Cómo escribir:",
    rules=(
        "Ve de lo que gustó a lo neutral (breve, opcional) y después a lo que no gustó, "
        "en un texto continuo.",
        "Si nada gustó, no fuerces elogios. Sé sincero con lo negativo sin ser agresivo.",
        "Sin viñetas ni listas.",
    ),
    style_heading="Estilo:",
    length_template="Extensión: entre {minimum} y {maximum} palabras aproximadamente.",
    examples_heading="Ejemplos:",
    styles={
        WriterStyle.SHORT: StyleBlock(
            guidance="Muy breve y directo. Los mínimos adjetivos.",
            budget=_words(8, 25),
            examples=("La comida, buena. El servicio, lento.", "Personal amable. Volveré."),
        ),
        WriterStyle.CASUAL: StyleBlock(
            guidance="Tono conversacional, como si se lo contaras a un amigo.",
            budget=_words(30, 65),
            examples=(
                "La comida estaba muy rica y las raciones eran justas. "
                "Lo único es que tardaron bastante en sacar los platos, eso sí se notó.",
            ),
        ),
        WriterStyle.DETAILED: StyleBlock(
            guidance="Claro e informativo, con detalles concretos. Nada poético.",
            budget=_words(70, 120),
            examples=(
                "Los platos estaban bien sazonados y se disfrutaban hasta el último bocado. "
                "El personal respondía rápido a las preguntas y estaba atento sin agobiar. "
                "En horas punta la comida tardó unos veinte minutos, así que conviene venir sin prisa.",
            ),
        ),
    },
    persona=PersonaPhrases(
        header="Sobre ti:",
        separator=", ",
        field_labels=("Género", "Edad", "Frecuencia de visita"),
        genders={Gender.MALE: "hombre", Gender.FEMALE: "mujer", Gender.OTHER: "otro"},
        ages={
            AgeBand.TEENS: "adolescente",
            AgeBand.TWENTIES: "20-29 años",
            AgeBand.THIRTIES: "30-39 años",
            AgeBand.FORTIES: "40-49 años",
            AgeBand.FIFTIES: "50-59 años",
            AgeBand.SIXTIES_PLUS: "60 años o más",
        },
        frequencies={
            VisitFrequency.FIRST_TIME: "primera visita",
            VisitFrequency.OCCASIONAL: "algunas visitas",
            VisitFrequency.REGULAR: "cliente habitual",
        },
        frequency_hints={
            VisitFrequency.FIRST_TIME: "Escríbela como una primera impresión.",
            VisitFrequency.OCCASIONAL: "Escríbela desde la experiencia de haber venido algunas veces.",
            VisitFrequency.REGULAR: (
                "Escríbela como cliente habitual, dejando ver la familiaridad y la comodidad."
            ),
        },
    ),
    group_labels={
        TagCategory.GOOD: "Me gustó",
        TagCategory.NEUTRAL: "Normal",
        TagCategory.BAD: "No me gustó",
    },
    connector=", ",
    user_intro=(
        "Las etiquetas siguientes son ideas de partida para la reseña. "
        "Reformula cada una como una experiencia; nunca repitas una etiqueta palabra por palabra."
    ),
    context_template="{tag} ({context})",
    output_instruction="Devuelve solo el texto de la reseña.",
)

PROMPT_TABLE: dict[str, LanguagePack] = {pack.code: pack for pack in (JA, EN, ZH, KO, ES)}


def language_pack(language: str | None) -> LanguagePack:
    """Return the pack for ``language``, falling back to the base language."""
    return PROMPT_TABLE[resolve_language(language)]


def resolve_cell(language: str | None, style: WriterStyle) -> PromptCell:
    pack = language_pack(language)
    block = pack.styles[style]
    return PromptCell(
        language=pack.code,
        prohibitions=pack.prohibitions,
        style_block=block,
        length_budget=block.budget,
    )


def _persona_annotation(pack: LanguagePack, persona: PersonaAttributes | None) -> str:
    if persona is None or persona.is_empty:
        return ""
    phrases = pack.persona
    gender_label, age_label, frequency_label = phrases.field_labels
    parts: list[str] = []
    if persona.gender is not None:
        parts.append(f"{gender_label}: {phrases.genders[persona.gender]}")
    if persona.age_band is not None:
        parts.append(f"{age_label}: {phrases.ages[persona.age_band]}")
    if persona.visit_frequency is not None:
        parts.append(f"{frequency_label}: {phrases.frequencies[persona.visit_frequency]}")
    lines = [f"{phrases.header} {phrases.separator.join(parts)}"]
    if persona.visit_frequency is not None:
        lines.append(phrases.frequency_hints[persona.visit_frequency])
    return "\n".join(lines)


def _system_instructions(
    pack: LanguagePack, cell: PromptCell, category: str, persona: PersonaAttributes | None
) -> str:
    block = cell.style_block
    budget = cell.length_budget
    sections = [
        pack.role.format(category=category),
        "\n".join([pack.prohibitions_heading, *(f"- {item}" for item in cell.prohibitions)]),
        "\n".join([pack.rules_heading, *(f"- {item}" for item in pack.rules)]),
        "\n".join(
            [
                pack.style_heading,
                block.guidance,
                pack.length_template.format(minimum=budget.minimum, maximum=budget.maximum),
                pack.examples_heading,
                *(f"- {example}" for example in block.examples),
            ]
        ),
    ]
    annotation = _persona_annotation(pack, persona)
    if annotation:
        sections.append(annotation)
    sections.append(pack.output_instruction)
    return "\n\n".join(sections)


def _render_tag(
    pack: LanguagePack, tag: str, store_category: str, catalog: TagCatalog | None
) -> str:
    record = catalog.lookup(store_category, tag) if catalog is not None else None
    if record is None:
        return tag
    label = record.display_name(pack.code)
    if record.context:
        return pack.context_template.format(tag=label, context=record.context)
    return label


def _user_content(
    pack: LanguagePack,
    selection: EffectiveSelection,
    store_category: str,
    catalog: TagCatalog | None,
) -> str:
    lines = [pack.user_intro]
    for category, tags in selection.groups():
        if not tags:
            continue
        rendered = pack.connector.join(
            _render_tag(pack, tag, store_category, catalog) for tag in tags
        )
        lines.append(f"- {pack.group_labels[category]}: {rendered}")
    return "\n".join(lines)


def compose(
    language: str | None,
    style: WriterStyle,
    store_category: str | None,
    selection: EffectiveSelection,
    persona: PersonaAttributes | None = None,
    catalog: TagCatalog | None = None,
) -> ComposedPrompt:
    """Build the system instructions and user content for one review."""
    pack = language_pack(language)
    cell = resolve_cell(pack.code, style)
    category = (store_category or "").strip()
    return ComposedPrompt(
        system_instructions=_system_instructions(
            pack, cell, category or pack.default_category, persona
        ),
        user_content=_user_content(pack, selection, category, catalog),
        language=pack.code,
        style=style,
    )


__all__ = [
    "PROMPT_TABLE",
    "ComposedPrompt",
    "LanguagePack",
    "LengthBudget",
    "PromptCell",
    "StyleBlock",
    "compose",
    "language_pack",
    "resolve_cell",
]
