"""Turkish and English display text for generated questions.

Only prompts, hints and data labels live here; cipher math and correct
answers never depend on the language.
"""

SUPPORTED_LANGUAGES = ('tr', 'en')

_TEXTS = {
    'en': {
        # data labels
        'label.ciphertext': 'Ciphertext',
        'label.plaintext': 'Plaintext',
        'label.key': 'Key',
        'label.keyword': 'Keyword',
        'label.shift': 'Shift',
        'label.indices': 'Alphabet Indices',
        'label.matrix': 'Matrix',
        'label.value1': 'Value 1',
        'label.value2': 'Value 2',
        'label.result': 'Result',
        'label.encoded': 'Encoded',
        'label.mixed_alphabet': 'Mixed Alphabet',
        # input hints
        'hint.encrypted': 'Enter encrypted text',
        'hint.plaintext': 'Enter plaintext',
        'hint.plaintext_upper': 'Enter plaintext (Uppercase)',
        'hint.shift_and_plain': 'Shift and Plaintext',
        'hint.keyword': 'Enter keyword',
        'hint.number': 'Enter number',
        'hint.encoded': 'Enter encoded output',
        'hint.meaningful': 'Meaningful Text',
        'hint.answer': 'Answer',
        # prompts
        'caesar.encode': 'Encrypt the text "{plain}" using Caesar cipher with a shift of {shift}.',
        'caesar.decode': 'The text below is encrypted using Caesar cipher with a shift of {shift}. Decrypt it.',
        'caesar.analysis': ('The text below is encrypted using Caesar cipher. Perform frequency analysis '
                            'to find the shift value and the meaningful plaintext.'),
        'vigenere.encode': "Encrypt \"{plain}\" using Vigenere cipher with key '{key}'.",
        'vigenere.decode': "The text below is encrypted using Vigenere cipher with key '{key}'. Decrypt it.",
        'vigenere.analysis': 'The plaintext and ciphertext are given below. Find the Vigenere keyword used.',
        'base64.encode': 'Encode "{plain}" to Base64.',
        'base64.decode': 'Decode the following Base64 text.',
        'xor.compute': 'Calculate XOR of {val1} and {val2} and write the result in decimal.',
        'xor.analysis': 'XOR operation: {val1} XOR [Key] = {result}. Find the key value.',
        'hill.encode': 'Encrypt the plaintext using Hill cipher with the given key matrix.',
        'hill.decode': 'Decrypt the ciphertext using Hill cipher with the given key matrix.',
        'mono.encode': 'Encrypt "{plain}" using the mixed alphabet table.',
        'mono.decode': 'Decrypt the ciphertext using the mixed alphabet table.',
        'playfair.encode': "Encrypt \"{plain}\" using Playfair cipher with key '{key}'.",
        'playfair.decode': 'The text below is encrypted using Playfair cipher. Decrypt it using the key and matrix.',
        'playfair.analysis': ('Decrypt the Playfair ciphertext using the given key and matrix '
                              'to find the meaningful text.'),
        'transposition.encode': "Encrypt \"{plain}\" using Columnar Transposition with key '{key}'.",
        'transposition.decode': 'Decrypt the text below which was encrypted using Columnar Transposition.',
        'transposition.analysis': ('Find the keyword used for Columnar Transposition given the plaintext '
                                   'and ciphertext.'),
    },
    'tr': {
        'label.ciphertext': 'Şifreli Metin',
        'label.plaintext': 'Düz Metin',
        'label.key': 'Anahtar',
        'label.keyword': 'Anahtar Kelime',
        'label.shift': 'Kaydırma',
        'label.indices': 'Alfabe İndeksleri',
        'label.matrix': 'Matris',
        'label.value1': 'Değer 1',
        'label.value2': 'Değer 2',
        'label.result': 'Sonuç',
        'label.encoded': 'Kodlanmış Metin',
        'label.mixed_alphabet': 'Karışık Alfabe',
        'hint.encrypted': 'Şifreli metni girin',
        'hint.plaintext': 'Düz metni girin',
        'hint.plaintext_upper': 'Düz metni girin (Büyük harf)',
        'hint.shift_and_plain': 'Kaydırma ve Düz Metin',
        'hint.keyword': 'Anahtar kelimeyi girin',
        'hint.number': 'Sayı girin',
        'hint.encoded': 'Kodlanmış çıktıyı yazın',
        'hint.meaningful': 'Anlamlı Metin',
        'hint.answer': 'Cevap',
        'caesar.encode': '"{plain}" metnini, {shift} birim öteleme kullanarak Sezar yöntemiyle şifreleyiniz.',
        'caesar.decode': 'Aşağıdaki metin Sezar yöntemiyle ({shift} birim öteleme) şifrelenmiştir. Şifreyi çözünüz.',
        'caesar.analysis': ('Aşağıdaki metin Sezar yöntemiyle şifrelenmiştir. Harf frekans analizi yaparak '
                            'öteleme değerini ve anlamlı düz metni bulunuz.'),
        'vigenere.encode': "\"{plain}\" metnini, '{key}' anahtar kelimesini kullanarak Vigenere yöntemiyle şifreleyiniz.",
        'vigenere.decode': "Aşağıdaki metin '{key}' anahtarı kullanılarak Vigenere yöntemiyle şifrelenmiştir. Şifreyi çözünüz.",
        'vigenere.analysis': ('Aşağıda düz metin ve şifreli hali verilmiştir. Vigenere şifrelemesinde '
                              'kullanılan anahtar kelimeyi bulunuz.'),
        'base64.encode': '"{plain}" metnini Base64 formatına kodlayınız.',
        'base64.decode': 'Aşağıda verilen Base64 kodlu metnin orijinal halini bulunuz.',
        'xor.compute': '{val1} ve {val2} değerlerinin XOR işleminin sonucunu onluk tabanda yazınız.',
        'xor.analysis': 'XOR işlemi: {val1} XOR [Anahtar] = {result}. Anahtar değerini bulunuz.',
        'hill.encode': 'Verilen anahtar matrisini kullanarak düz metni Hill yöntemiyle şifreleyiniz.',
        'hill.decode': 'Aşağıdaki metin Hill yöntemiyle şifrelenmiştir. Verilen anahtar matrisiyle şifreyi çözünüz.',
        'mono.encode': 'Karışık alfabe tablosunu kullanarak "{plain}" metnini Monoalfabetik yöntemle şifreleyiniz.',
        'mono.decode': 'Karışık alfabe tablosunu kullanarak şifrelenmiş metni çözünüz.',
        'playfair.encode': "'{key}' anahtar kelimesiyle oluşturulan Playfair matrisini kullanarak \"{plain}\" metnini şifreleyiniz.",
        'playfair.decode': ('Aşağıdaki metin Playfair yöntemiyle şifrelenmiştir. Verilen anahtar kelime ve '
                            'matrisi kullanarak şifreyi çözünüz.'),
        'playfair.analysis': ('Aşağıdaki metin Playfair ile şifrelenmiştir. Anahtar ve matris verilmiştir. '
                              'Şifreyi çözerek anlamlı metni bulunuz.'),
        'transposition.encode': "\"{plain}\" metnini, '{key}' anahtarını kullanarak Sütunlu Yer Değiştirme yöntemiyle şifreleyiniz.",
        'transposition.decode': 'Aşağıdaki metin Sütunlu Yer Değiştirme yöntemiyle şifrelenmiştir. Şifreyi çözünüz.',
        'transposition.analysis': ('Aşağıda düz metin ve şifreli hali verilmiştir. Sütunlu Yer Değiştirme '
                                   'şifrelemesinde kullanılan anahtar kelimeyi bulunuz.'),
    },
}

MEANINGFUL_TEXTS = {
    'en': [
        'HISTORY IS LIKE A MIRROR THAT SHEDS LIGHT ON THE FUTURE',
        'LONDON IS A GLOBAL CITY WITH A RICH HISTORY AND DIVERSE CULTURE',
        'THE PYRAMIDS OF GIZA ARE THE ONLY SURVIVING WONDER OF THE ANCIENT WORLD',
        'CRYPTOLOGY USES MATHEMATICAL METHODS TO ENSURE THE SECURITY OF DATA',
        'CYBER SECURITY IS ONE OF THE MOST CRITICAL DEFENSE LINES OF TODAY',
        'SPACE EXPLORATION PUSHES THE BOUNDARIES OF HUMAN KNOWLEDGE',
        'QUANTUM COMPUTING PROMISES TO SOLVE PROBLEMS CLASSICAL COMPUTERS CANNOT',
        'A JOURNEY OF A THOUSAND MILES BEGINS WITH A SINGLE STEP',
        'THE PEN IS MIGHTIER THAN THE SWORD',
        'BOOKS ARE PORTABLE MAGIC THAT LET US TRAVEL WITHOUT MOVING OUR FEET',
    ],
    'tr': [
        'TARIH GELECEGE ISIK TUTAN BIR AYNA GIBIDIR',
        'ISTANBUL BOGAZI ASYA VE AVRUPA KITALARINI BIRLESTIRIR',
        'ANADOLU TOPRAKLARI BINLERCE YILLIK MEDENIYETLERE EV SAHIPLIGI YAPMISTIR',
        'KRIPTOLOJI VERILERIN GUVENLIGINI SAGLAMAK ICIN MATEMATIK KULLANIR',
        'SIBER GUVENLIK GUNUMUZ DUNYASININ EN KRITIK SAVUNMA HATLARINDAN BIRIDIR',
        'YAPAY ZEKA TEKNOLOJILERI GELECEGIN MESLEKLERINI SEKILLENDIRIYOR',
        'BIR ELIN NESI VAR IKI ELIN SESI VAR',
        'IYILIK YAP DENIZE AT BALIK BILMEZSE HALIK BILIR',
        'SABIR ACI ISE DE MEYVESI TATLIDIR',
        'KITAPLAR HIC SOLMAYAN CICEKLERDIR',
    ],
}

SHORT_TEXTS = {
    'en': ['TOP SECRET', 'CYBER WAR', 'SAFE ZONE', 'CODE RED', 'OPERATION', 'HIDDEN KEY', 'SECRET FILE'],
    'tr': ['SIBER VATAN', 'GIZLI DOSYA', 'DEVLET SIRRI', 'GUVENLI HAT', 'OPERASYON', 'MAVI VATAN', 'KRIPTO'],
}


def resolve_language(language):
    return 'en' if (language or '').strip().lower() == 'en' else 'tr'


class Texts:
    """Lookup bound to one language; anything other than ``en`` is Turkish."""

    def __init__(self, language):
        self.language = resolve_language(language)
        self._table = _TEXTS[self.language]

    def label(self, name):
        return self._table[f"label.{name}"]

    def hint(self, name):
        return self._table[f"hint.{name}"]

    def prompt(self, name, **fmt):
        return self._table[name].format(**fmt)

    def meaningful(self, rng):
        return rng.choice(MEANINGFUL_TEXTS[self.language])

    def short_meaningful(self, rng):
        return rng.choice(SHORT_TEXTS[self.language])
