"""
Модуль лемматизации текста
"""

import re
from abc import ABC, abstractmethod
from collections import Counter
from functools import lru_cache
from typing import List, Dict, Optional, Set, Tuple

import nltk
import pymorphy3
from nltk.stem import WordNetLemmatizer
from nltk.tag.perceptron import PerceptronTagger

from site_search.config import LEMMA_CONFIG
from site_search.utils import strip_markup, logger

WORD_PATTERN = re.compile(r'[a-zA-Zа-яА-ЯёЁ]+')
CYRILLIC_WORD = re.compile(r'^[а-яё]+$')
LATIN_WORD = re.compile(r'^[a-z]+$')


class Analyzer(ABC):
    """Морфологический анализатор одного языка"""

    language = ''

    @abstractmethod
    def normal_forms(self, word: str) -> List[str]:
        """Нормальные формы слова, первая - наиболее вероятная"""

    @abstractmethod
    def grammatical_tags(self, word: str) -> List[str]:
        """Части речи для всех разборов слова"""


class RussianAnalyzer(Analyzer):
    """Анализатор русского языка на основе pymorphy3"""

    language = 'ru'

    def __init__(self):
        self._morph = pymorphy3.MorphAnalyzer()

    def normal_forms(self, word: str) -> List[str]:
        forms = []
        for parse in self._morph.parse(word):
            if parse.normal_form not in forms:
                forms.append(parse.normal_form)
        return forms

    def grammatical_tags(self, word: str) -> List[str]:
        return [str(parse.tag.POS) for parse in self._morph.parse(word) if parse.tag.POS]


class EnglishAnalyzer(Analyzer):
    """
    Анализатор английского языка на основе nltk:
    часть речи - по разметке Penn Treebank, нормальная форма - WordNet
    """

    language = 'en'

    # Служебные теги Penn Treebank приводятся к тем же обозначениям, что и в pymorphy3
    PENN_TAGS = {
        'IN': 'PREP',
        'CC': 'CONJ',
        'RP': 'PRCL',
        'DT': 'PRCL',
        'PDT': 'PRCL',
        'WDT': 'PRCL',
        'TO': 'PRCL',
        'UH': 'INTJ',
        'MD': 'VERB',
        'CD': 'NUMR',
        'PRP': 'NPRO',
        'PRP$': 'NPRO',
        'WP': 'NPRO',
        'WP$': 'NPRO',
        'EX': 'NPRO',
    }
    PENN_PREFIXES = (
        ('NN', 'NOUN'),
        ('VB', 'VERB'),
        ('JJ', 'ADJF'),
        ('RB', 'ADVB'),
        ('WRB', 'ADVB'),
    )
    WORDNET_POS = {'VERB': 'v', 'ADJF': 'a', 'ADVB': 'r'}
    NLTK_RESOURCES = ('wordnet', 'omw-1.4', 'averaged_perceptron_tagger_eng', 'averaged_perceptron_tagger')

    def __init__(self, auto_download: bool = LEMMA_CONFIG['nltk_auto_download']):
        self._lemmatizer = WordNetLemmatizer()
        self._tagger = None
        self._analyze = lru_cache(maxsize=65536)(self._analyze_word)
        self._ensure_resources(auto_download)

    def _load_resources(self):
        # Модель теггера загружается один раз на анализатор
        self._tagger = PerceptronTagger()
        self._analyze_word('tests')

    def _ensure_resources(self, auto_download: bool):
        """Проверка данных nltk; ленивые корпуса загружаются до старта потоков"""
        try:
            self._load_resources()
        except LookupError:
            if not auto_download:
                raise
            logger.info("Downloading nltk resources for the English analyzer")
            for resource in self.NLTK_RESOURCES:
                nltk.download(resource, quiet=True)
            self._load_resources()

    @classmethod
    def coarse_tag(cls, penn_tag: str) -> str:
        if penn_tag in cls.PENN_TAGS:
            return cls.PENN_TAGS[penn_tag]
        for prefix, tag in cls.PENN_PREFIXES:
            if penn_tag.startswith(prefix):
                return tag
        return 'UNKN'

    def _analyze_word(self, word: str) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        penn_tag = self._tagger.tag([word])[0][1]
        tag = self.coarse_tag(penn_tag)
        lemma = self._lemmatizer.lemmatize(word, self.WORDNET_POS.get(tag, 'n'))
        return (lemma,), (tag,)

    def normal_forms(self, word: str) -> List[str]:
        return list(self._analyze(word)[0])

    def grammatical_tags(self, word: str) -> List[str]:
        return list(self._analyze(word)[1])


class LemmaExtractor:
    """Извлечение лемм из текста с учетом языка слова"""

    def __init__(self, analyzers: Dict[str, Analyzer],
                 min_word_length: int = LEMMA_CONFIG['min_word_length'],
                 excluded_tags: Optional[Set[str]] = None):
        self.analyzers = analyzers
        self.min_word_length = min_word_length
        self.excluded_tags = set(excluded_tags if excluded_tags is not None else LEMMA_CONFIG['excluded_tags'])

    @staticmethod
    def detect_language(word: str) -> Optional[str]:
        """Язык слова по набору символов; смешанные слова не определяются"""
        if CYRILLIC_WORD.match(word):
            return 'ru'
        if LATIN_WORD.match(word):
            return 'en'
        return None

    def tokenize(self, text: str, markup: bool = True) -> List[str]:
        """
        Разбиение на слова из латиницы и кириллицы в нижнем регистре.
        markup=False - текст уже очищен от разметки, угловые скобки в нем литеральны
        """
        if markup:
            text = strip_markup(text)
        words = (match.group(0).lower() for match in WORD_PATTERN.finditer(text))
        return [word for word in words if len(word) >= self.min_word_length]

    def lemma_for(self, word: str) -> Optional[str]:
        """Лемма слова или None, если слово служебное или не разбирается"""
        analyzer = self.analyzers.get(self.detect_language(word))
        if analyzer is None:
            return None

        try:
            tags = analyzer.grammatical_tags(word)
            if tags and all(tag in self.excluded_tags for tag in tags):
                return None
            forms = analyzer.normal_forms(word)
        except Exception as e:
            logger.debug(f"Cannot analyze word '{word}': {e}")
            return None

        return forms[0] if forms else None

    def extract_lemmas(self, text: str, markup: bool = True) -> List[str]:
        """
        Последовательность лемм текста в порядке появления слов
        """
        if not text:
            return []

        lemmas = []
        for word in self.tokenize(text, markup):
            lemma = self.lemma_for(word)
            if lemma:
                lemmas.append(lemma)
        return lemmas

    def count_lemmas(self, text: str, markup: bool = True) -> Dict[str, int]:
        """Частоты лемм на странице"""
        return dict(Counter(self.extract_lemmas(text, markup)))

    def distinct_lemmas(self, text: str) -> List[str]:
        """Уникальные леммы в порядке первого появления"""
        return list(dict.fromkeys(self.extract_lemmas(text)))


def build_default_extractor() -> LemmaExtractor:
    """Экстрактор с русским и английским анализаторами"""
    analyzers: Dict[str, Analyzer] = {'ru': RussianAnalyzer()}
    try:
        analyzers['en'] = EnglishAnalyzer()
    except LookupError as e:
        logger.warning(f"English analyzer is unavailable, English words will be skipped: {e}")
    return LemmaExtractor(analyzers)
