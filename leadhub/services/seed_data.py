"""LeadHub — Field Mapping Seed Table.

(raw field label, canonical field, language) triples for common lead form
fields. Labels that normalize to the same key keep their first entry.
"""

from typing import List, Tuple

STANDARD_FIELDS: List[str] = [
    "email",
    "phone",
    "full_name",
    "first_name",
    "last_name",
    "street_address",
    "post_code",
    "city",
    "province",
    "country",
    "date_of_birth",
    "comments",
    "job_experience",
    "salary_expectations",
    "languages",
    "work_onsite",
]

FIELD_MAPPING_SEED: List[Tuple[str, str, str]] = [
    # ── Email ──
    ("email", "email", "en"),
    ("email_address", "email", "en"),
    ("mail", "email", "en"),
    ("e-mail-adresse", "email", "de"),
    ("indirizzo_email", "email", "it"),
    ("correo_electronico", "email", "es"),
    ("correo", "email", "es"),
    ("endereço_de_email", "email", "pt"),
    ("e-posta", "email", "tr"),
    ("e-posta_adresi", "email", "tr"),
    ("adresse_e-mail", "email", "fr"),
    ("courriel", "email", "fr"),
    ("e-mailadres", "email", "nl"),
    ("adres_e-mail", "email", "pl"),
    ("e-postadress", "email", "sv"),
    ("электронная_почта", "email", "ru"),
    # ── Phone ──
    ("phone", "phone", "en"),
    ("phone_number", "phone", "en"),
    ("tel", "phone", "en"),
    ("mobile", "phone", "en"),
    ("telefonnummer", "phone", "de"),
    ("telefon", "phone", "tr"),
    ("telefon_numarası", "phone", "tr"),
    ("numero_di_telefono", "phone", "it"),
    ("telefono", "phone", "it"),
    ("numero_de_telefono", "phone", "es"),
    ("número_de_telefone", "phone", "pt"),
    ("numéro_de_téléphone", "phone", "fr"),
    ("telefoonnummer", "phone", "nl"),
    ("numer_telefonu", "phone", "pl"),
    ("telefonnummer_mobil", "phone", "sv"),
    ("номер_телефона", "phone", "ru"),
    # ── Full name ──
    ("full_name", "full_name", "en"),
    ("name", "full_name", "en"),
    ("vollständiger_name", "full_name", "de"),
    ("nome_completo", "full_name", "it"),
    ("nombre_completo", "full_name", "es"),
    ("nome_completo_pt", "full_name", "pt"),
    ("ad_soyad", "full_name", "tr"),
    ("nom_complet", "full_name", "fr"),
    ("volledige_naam", "full_name", "nl"),
    ("imię_i_nazwisko", "full_name", "pl"),
    ("fullständigt_namn", "full_name", "sv"),
    ("полное_имя", "full_name", "ru"),
    # ── First name ──
    ("first_name", "first_name", "en"),
    ("vorname", "first_name", "de"),
    ("nome", "first_name", "it"),
    ("nombre", "first_name", "es"),
    ("primeiro_nome", "first_name", "pt"),
    ("ad", "first_name", "tr"),
    ("prénom", "first_name", "fr"),
    ("voornaam", "first_name", "nl"),
    ("imię", "first_name", "pl"),
    ("förnamn", "first_name", "sv"),
    ("имя", "first_name", "ru"),
    # ── Last name ──
    ("last_name", "last_name", "en"),
    ("surname", "last_name", "en"),
    ("nachname", "last_name", "de"),
    ("cognome", "last_name", "it"),
    ("apellido", "last_name", "es"),
    ("sobrenome", "last_name", "pt"),
    ("soyad", "last_name", "tr"),
    ("nom_de_famille", "last_name", "fr"),
    ("achternaam", "last_name", "nl"),
    ("nazwisko", "last_name", "pl"),
    ("efternamn", "last_name", "sv"),
    ("фамилия", "last_name", "ru"),
    # ── Street address ──
    ("street_address", "street_address", "en"),
    ("address", "street_address", "en"),
    ("straße", "street_address", "de"),
    ("adresse", "street_address", "fr"),
    ("indirizzo", "street_address", "it"),
    ("dirección", "street_address", "es"),
    ("endereço", "street_address", "pt"),
    ("adres", "street_address", "tr"),
    ("adres_ulica", "street_address", "pl"),
    ("gatuadress", "street_address", "sv"),
    ("straatnaam", "street_address", "nl"),
    ("адрес", "street_address", "ru"),
    # ── Post code ──
    ("zip_code", "post_code", "en"),
    ("post_code", "post_code", "en"),
    ("postleitzahl", "post_code", "de"),
    ("cap", "post_code", "it"),
    ("código_postal", "post_code", "es"),
    ("posta_kodu", "post_code", "tr"),
    ("code_postal", "post_code", "fr"),
    ("postcode", "post_code", "nl"),
    ("kod_pocztowy", "post_code", "pl"),
    ("postnummer", "post_code", "sv"),
    ("почтовый_индекс", "post_code", "ru"),
    # ── City ──
    ("city", "city", "en"),
    ("town", "city", "en"),
    ("town/city", "city", "en"),
    ("district", "city", "en"),
    ("stadt", "city", "de"),
    ("città", "city", "it"),
    ("citta", "city", "it"),
    ("ciudad", "city", "es"),
    ("cidade", "city", "pt"),
    ("ilçe", "city", "tr"),
    ("ilce", "city", "tr"),
    ("ville", "city", "fr"),
    ("stad", "city", "nl"),
    ("miasto", "city", "pl"),
    ("ort", "city", "sv"),
    ("город", "city", "ru"),
    # ── Province / state ──
    ("province", "province", "en"),
    ("state", "province", "en"),
    ("region", "province", "en"),
    ("bundesland", "province", "de"),
    ("provincia", "province", "it"),
    ("estado", "province", "pt"),
    ("il", "province", "tr"),
    ("département", "province", "fr"),
    ("provincie", "province", "nl"),
    ("województwo", "province", "pl"),
    ("län", "province", "sv"),
    ("область", "province", "ru"),
    # ── Country ──
    ("country", "country", "en"),
    ("land", "country", "de"),
    ("paese", "country", "it"),
    ("país", "country", "es"),
    ("pais", "country", "es"),
    ("ülke", "country", "tr"),
    ("ulke", "country", "tr"),
    ("pays", "country", "fr"),
    ("kraj", "country", "pl"),
    ("страна", "country", "ru"),
    # ── Date of birth ──
    ("date_of_birth", "date_of_birth", "en"),
    ("dob", "date_of_birth", "en"),
    ("birthday", "date_of_birth", "en"),
    ("birth_date", "date_of_birth", "en"),
    ("geburtsdatum", "date_of_birth", "de"),
    ("data_di_nascita", "date_of_birth", "it"),
    ("fecha_de_nacimiento", "date_of_birth", "es"),
    ("data_de_nascimento", "date_of_birth", "pt"),
    ("doğum_tarihi", "date_of_birth", "tr"),
    ("date_de_naissance", "date_of_birth", "fr"),
    ("geboortedatum", "date_of_birth", "nl"),
    ("data_urodzenia", "date_of_birth", "pl"),
    ("födelsedatum", "date_of_birth", "sv"),
    ("дата_рождения", "date_of_birth", "ru"),
    # ── Comments ──
    ("comments", "comments", "en"),
    ("comment", "comments", "en"),
    ("notes", "comments", "en"),
    ("message", "comments", "en"),
    ("kommentar", "comments", "de"),
    ("commenti", "comments", "it"),
    ("comentarios", "comments", "es"),
    ("comentários", "comments", "pt"),
    ("yorum", "comments", "tr"),
    ("commentaires", "comments", "fr"),
    ("opmerkingen", "comments", "nl"),
    ("komentarz", "comments", "pl"),
    ("kommentarer", "comments", "sv"),
    ("комментарий", "comments", "ru"),
]
