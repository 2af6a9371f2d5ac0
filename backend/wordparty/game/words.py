from __future__ import annotations

import random


ARABIC_LETTERS: tuple[str, ...] = (
    "أ", "ب", "ت", "ث", "ج", "ح", "خ", "د", "ذ", "ر", "ز", "س", "ش", "ص",
    "ض", "ط", "ظ", "ع", "غ", "ف", "ق", "ك", "ل", "م", "ن", "ه", "و", "ي",
)

DEFAULT_CATEGORIES: tuple[str, ...] = ("boy", "girl", "animal", "plant", "object", "country")

DEFAULT_SPY_CATEGORIES: tuple[str, ...] = ("animal", "object", "food", "place", "country")


SPY_WORD_DATABASE: dict[str, dict] = {
    "animal": {
        "label": "🦁 حيوان",
        "words": [
            "أسد", "نمر", "فيل", "زرافة", "قرد", "دب", "ذئب", "ثعلب", "أرنب", "غزال",
            "حصان", "جمل", "بقرة", "خروف", "ماعز", "قط", "كلب", "فأر", "سلحفاة", "تمساح",
            "ثعبان", "نسر", "ببغاء", "حمامة", "بطريق", "دولفين", "حوت", "سمكة قرش", "أخطبوط", "فراشة",
            "نحلة", "عقرب", "عنكبوت", "وحيد القرن", "فهد", "باندا", "كنغر", "كوالا", "حمار وحشي", "فلامنجو",
            "بومة", "صقر", "ديك", "بطة", "إوزة", "حمار", "غراب", "طاووس", "سنجاب", "خفاش",
        ],
    },
    "object": {
        "label": "📦 جماد",
        "words": [
            "كرسي", "طاولة", "سرير", "مرآة", "ساعة", "مفتاح", "قلم", "كتاب", "هاتف", "تلفزيون",
            "ثلاجة", "غسالة", "مكنسة", "مروحة", "مكيف", "لمبة", "شمعة", "حقيبة", "محفظة", "نظارة",
            "مظلة", "وسادة", "بطانية", "صحن", "كوب", "ملعقة", "شوكة", "سكين", "قدر", "مقلاة",
            "فرشاة أسنان", "مشط", "صابون", "منشفة", "دلو", "مسمار", "مطرقة", "مقص", "إبرة", "خيط",
            "دفتر", "ممحاة", "مسطرة", "حاسبة", "سماعة", "شاحن", "فلاشة", "ماوس", "لوحة مفاتيح", "شاشة",
        ],
    },
    "food": {
        "label": "🍕 أكل",
        "words": [
            "كشري", "فول", "طعمية", "شاورما", "كباب", "كفتة", "ملوخية", "محشي", "مسقعة", "فتة",
            "بيتزا", "برجر", "سوشي", "باستا", "لازانيا", "سلطة", "شوربة", "فراخ مشوية", "سمك مشوي", "رز",
            "عيش", "جبنة", "زبدة", "بيض", "لبن", "زبادي", "عسل", "مربى", "شيبسي", "بسكويت",
            "كيك", "آيس كريم", "شوكولاتة", "حلاوة", "بسبوسة", "كنافة", "قطايف", "أم علي", "بقلاوة", "كريب",
        ],
    },
    "place": {
        "label": "📍 مكان",
        "words": [
            "مدرسة", "مستشفى", "مسجد", "كنيسة", "سوبرماركت", "مطعم", "كافيه", "سينما", "مكتبة", "ملعب",
            "حديقة", "شاطئ", "جبل", "صحراء", "غابة", "نهر", "بحيرة", "شلال", "كهف", "جزيرة",
            "مطار", "محطة قطر", "موقف أتوبيس", "فندق", "متحف", "قلعة", "قصر", "برج", "جسر", "نفق",
            "مصنع", "مزرعة", "حديقة حيوان", "ملاهي", "سيرك", "استاد", "جامعة", "مختبر", "صيدلية", "بنك",
        ],
    },
    "country": {
        "label": "🌍 بلد",
        "words": [
            "مصر", "السعودية", "الإمارات", "الكويت", "قطر", "البحرين", "عمان", "الأردن", "لبنان", "سوريا",
            "العراق", "فلسطين", "اليمن", "ليبيا", "تونس", "الجزائر", "المغرب", "السودان", "الصومال", "جيبوتي",
            "أمريكا", "كندا", "بريطانيا", "فرنسا", "ألمانيا", "إيطاليا", "إسبانيا", "البرتغال", "هولندا", "بلجيكا",
            "تركيا", "إيران", "الهند", "الصين", "اليابان", "كوريا", "أستراليا", "البرازيل", "المكسيك", "الأرجنتين",
        ],
    },
    "job": {
        "label": "👨‍💼 مهنة",
        "words": [
            "دكتور", "مهندس", "محامي", "معلم", "ضابط", "طيار", "رائد فضاء", "صحفي", "مصور", "ممثل",
            "مغني", "رسام", "نحات", "كاتب", "شيف", "نجار", "حداد", "سباك", "كهربائي", "ميكانيكي",
            "سائق", "بحار", "صياد", "فلاح", "خباز", "جزار", "حلاق", "خياط", "عطار", "صيدلي",
            "محاسب", "مبرمج", "مصمم", "مترجم", "حارس أمن", "إطفائي", "ممرض", "طبيب أسنان", "بيطري", "مدرب",
        ],
    },
    "sport": {
        "label": "⚽ رياضة",
        "words": [
            "كرة قدم", "كرة سلة", "كرة طائرة", "كرة يد", "تنس", "تنس طاولة", "بادل", "سباحة", "غطس", "تزلج",
            "ملاكمة", "مصارعة", "جودو", "كاراتيه", "تايكوندو", "كونغ فو", "رماية", "رمي الرمح", "رمي القرص", "الوثب الطويل",
            "الوثب العالي", "ركوب خيل", "بولو", "جولف", "بيسبول", "كريكيت", "رجبي", "هوكي", "تزلج على الجليد", "سباق سيارات",
            "دراجات", "ماراثون", "ترياثلون", "رفع أثقال", "جمباز", "باليه", "يوجا", "سكواش", "بولينج", "بلياردو",
        ],
    },
    "movie": {
        "label": "🎬 فيلم/مسلسل",
        "words": [
            "الناظر", "عسل أسود", "الليمبي", "صعيدي في الجامعة", "مرجان أحمد مرجان", "الباشا تلميذ", "زكي شان",
            "اللي بالي بالك", "همام في أمستردام", "أبو علي", "كلم ماما", "ولاد العم", "تيمور وشفيقة", "كابتن مصر",
            "الفيل الأزرق", "تراب الماس", "كيرة والجن", "واحد صحيح", "عمر وسلمى", "البيه البواب", "طباخ الريس",
            "جري الوحوش", "حين ميسرة", "الحفلة", "غبي منه فيه", "الجزيرة", "الممر", "عوكل", "أولاد رزق", "الخلية",
        ],
    },
    "celebrity": {
        "label": "⭐ شخصية مشهورة",
        "words": [
            "محمد صلاح", "عمرو دياب", "أحمد حلمي", "محمد هنيدي", "عادل إمام", "كريستيانو رونالدو", "ليونيل ميسي",
            "محمد رمضان", "تامر حسني", "شيرين", "أنغام", "نانسي عجرم", "إليسا", "أحمد السقا", "كريم عبدالعزيز",
            "أحمد عز", "ياسمين عبدالعزيز", "منى زكي", "أحمد مكي", "محمد سعد", "بيومي فؤاد", "أكرم حسني",
            "علي ربيع", "أشرف عبدالباقي", "يسرا", "هند صبري", "أحمد زكي", "نور الشريف", "سعاد حسني", "عمر الشريف",
        ],
    },
    "clothing": {
        "label": "👔 لبس",
        "words": [
            "تيشيرت", "قميص", "بنطلون", "جينز", "شورت", "فستان", "جيبة", "بلوزة", "جاكيت", "كوت",
            "بالطو", "سويتر", "هودي", "عباية", "جلابية", "طرحة", "حجاب", "إيشارب", "كرافتة", "بابيون",
            "حذاء", "صندل", "شبشب", "جزمة", "كوتشي", "كعب", "شراب", "قفاز", "قبعة", "طاقية",
            "نظارة شمس", "ساعة يد", "خاتم", "سلسلة", "حلق", "بروش", "حزام", "بيجامة", "روب", "مايوه",
        ],
    },
}


def pick_letter(used: list[str], preferred: str | None = None, rng: random.Random | None = None) -> tuple[str, list[str]]:
    """Pick the next round letter.

    Returns ``(letter, used_letters)``; ``used_letters`` is reset (before the
    new letter is appended) once the whole alphabet has been drawn.
    """
    r = rng or random
    used_now = [letter for letter in used if letter in ARABIC_LETTERS]
    available = [letter for letter in ARABIC_LETTERS if letter not in used_now]
    if not available:
        used_now = []
        available = list(ARABIC_LETTERS)

    if preferred and preferred in available:
        letter = preferred
    else:
        letter = r.choice(available)

    return letter, used_now + [letter]


def category_words(category: str) -> list[str]:
    entry = SPY_WORD_DATABASE.get(category)
    if not entry:
        return []
    return list(entry["words"])


def category_label(category: str) -> str:
    entry = SPY_WORD_DATABASE.get(category)
    return entry["label"] if entry else category


def pick_spy_word(categories: list[str], used_words: list[str], rng: random.Random | None = None) -> tuple[str, str, list[str]]:
    """Pick ``(category, word, used_words)`` for a spy round.

    Only the chosen category's pool recycles when exhausted; words used from
    other categories stay excluded.
    """
    r = rng or random
    category = r.choice(categories)
    pool = category_words(category)
    if not pool:
        raise ValueError(f"unknown spy category: {category}")

    available = [w for w in pool if w not in used_words]
    if not available:
        used_words = [w for w in used_words if w not in pool]
        available = pool

    word = r.choice(available)
    return category, word, used_words + [word]


def guess_options(category: str, word: str, decoys: int = 5, rng: random.Random | None = None) -> list[str]:
    r = rng or random
    others = [w for w in category_words(category) if w != word]
    picked = r.sample(others, min(decoys, len(others)))
    options = [word] + picked
    r.shuffle(options)
    return options
