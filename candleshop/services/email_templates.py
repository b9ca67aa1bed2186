from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Dict, Optional

EMAIL_LANGUAGES = ("de", "hr", "en", "it", "sl")
DEFAULT_EMAIL_LANGUAGE = "de"
STORE_NAME = "Kerzenwelt by Dani"
_ACCENT = "#D4AF37"


@dataclass
class EmailMessage:
    subject: str
    html: str
    text: str = ""


def normalize_email_language(language: Optional[str]) -> str:
    candidate = (language or "").strip().lower()
    return candidate if candidate in EMAIL_LANGUAGES else DEFAULT_EMAIL_LANGUAGE


_VERIFICATION: Dict[str, Dict[str, str]] = {
    "de": {
        "subject": "Bestätigen Sie Ihre E-Mail-Adresse - {store}",
        "title": "Bestätigen Sie Ihre E-Mail-Adresse",
        "greeting": "Hallo {username},",
        "message": (
            "Vielen Dank für Ihre Registrierung bei {store}. Bitte bestätigen Sie Ihre E-Mail-Adresse, "
            "um Ihre Registrierung abzuschließen."
        ),
        "button": "E-Mail bestätigen",
        "expires": "Dieser Link ist 24 Stunden gültig.",
        "ignore": "Wenn Sie diese E-Mail nicht angefordert haben, können Sie sie ignorieren.",
        "thanks": "Vielen Dank,",
        "team": "Das {store} Team",
    },
    "hr": {
        "subject": "Potvrdite svoju e-mail adresu - {store}",
        "title": "Potvrdite svoju e-mail adresu",
        "greeting": "Pozdrav {username},",
        "message": (
            "Hvala što ste se registrirali na {store}. Molimo potvrdite svoju e-mail adresu "
            "kako biste završili registraciju."
        ),
        "button": "Potvrdi e-mail",
        "expires": "Ova veza vrijedi 24 sata.",
        "ignore": "Ako niste zatražili ovaj e-mail, možete ga ignorirati.",
        "thanks": "Hvala,",
        "team": "Tim {store}",
    },
    "en": {
        "subject": "Verify Your Email Address - {store}",
        "title": "Verify Your Email Address",
        "greeting": "Hello {username},",
        "message": (
            "Thank you for registering with {store}. Please verify your email address "
            "to complete your registration."
        ),
        "button": "Verify Email",
        "expires": "This link is valid for 24 hours.",
        "ignore": "If you did not request this email, you can safely ignore it.",
        "thanks": "Thank you,",
        "team": "The {store} Team",
    },
    "it": {
        "subject": "Verifica il tuo indirizzo email - {store}",
        "title": "Verifica il tuo indirizzo email",
        "greeting": "Ciao {username},",
        "message": (
            "Grazie per esserti registrato su {store}. Verifica il tuo indirizzo email "
            "per completare la registrazione."
        ),
        "button": "Verifica email",
        "expires": "Questo link è valido per 24 ore.",
        "ignore": "Se non hai richiesto questa email, puoi ignorarla.",
        "thanks": "Grazie,",
        "team": "Il team di {store}",
    },
    "sl": {
        "subject": "Potrdite svoj e-poštni naslov - {store}",
        "title": "Potrdite svoj e-poštni naslov",
        "greeting": "Pozdravljeni {username},",
        "message": (
            "Zahvaljujemo se vam za registracijo na {store}. Prosimo, potrdite svoj e-poštni naslov "
            "za dokončanje registracije."
        ),
        "button": "Potrdi e-pošto",
        "expires": "Ta povezava velja 24 ur.",
        "ignore": "Če tega e-poštnega sporočila niste zahtevali, ga lahko prezrete.",
        "thanks": "Hvala,",
        "team": "Ekipa {store}",
    },
}

_NEW_ORDER: Dict[str, Dict[str, str]] = {
    "hr": {
        "subject": "Nova narudžba #{order_id} - {store}",
        "heading": "Nova narudžba na {store}",
        "intro": "Imate novu narudžbu na vašoj web trgovini.",
        "details": "Detalji narudžbe #{order_id}",
        "date": "Datum",
        "total": "Ukupno",
        "payment": "Način plaćanja",
        "status": "Status",
        "button": "Pregledaj narudžbu",
        "sms": "Nova narudžba #{order_id} na {store} - Ukupno: {total} EUR",
    },
    "de": {
        "subject": "Neue Bestellung #{order_id} - {store}",
        "heading": "Neue Bestellung bei {store}",
        "intro": "Sie haben eine neue Bestellung in Ihrem Webshop.",
        "details": "Bestelldetails #{order_id}",
        "date": "Datum",
        "total": "Gesamt",
        "payment": "Zahlungsmethode",
        "status": "Status",
        "button": "Bestellung ansehen",
        "sms": "Neue Bestellung #{order_id} bei {store} - Gesamt: {total} EUR",
    },
    "en": {
        "subject": "New order #{order_id} - {store}",
        "heading": "New order at {store}",
        "intro": "You have a new order in your web shop.",
        "details": "Order details #{order_id}",
        "date": "Date",
        "total": "Total",
        "payment": "Payment method",
        "status": "Status",
        "button": "View order",
        "sms": "New order #{order_id} at {store} - Total: {total} EUR",
    },
    "it": {
        "subject": "Nuovo ordine #{order_id} - {store}",
        "heading": "Nuovo ordine su {store}",
        "intro": "Hai un nuovo ordine nel tuo negozio online.",
        "details": "Dettagli ordine #{order_id}",
        "date": "Data",
        "total": "Totale",
        "payment": "Metodo di pagamento",
        "status": "Stato",
        "button": "Visualizza ordine",
        "sms": "Nuovo ordine #{order_id} su {store} - Totale: {total} EUR",
    },
    "sl": {
        "subject": "Novo naročilo #{order_id} - {store}",
        "heading": "Novo naročilo v {store}",
        "intro": "V vaši spletni trgovini imate novo naročilo.",
        "details": "Podrobnosti naročila #{order_id}",
        "date": "Datum",
        "total": "Skupaj",
        "payment": "Način plačila",
        "status": "Status",
        "button": "Poglej naročilo",
        "sms": "Novo naročilo #{order_id} v {store} - Skupaj: {total} EUR",
    },
}

_INVOICE_CREATED: Dict[str, Dict[str, str]] = {
    "hr": {
        "subject": "Novi račun kreiran - {store}",
        "heading": "Automatski kreiran račun na {store}",
        "intro": "Automatski je kreiran novi račun za narudžbu #{order_id}.",
        "button": "Pregledaj račun",
        "sms": "Novi račun kreiran za narudžbu #{order_id} na {store}",
    },
    "de": {
        "subject": "Neue Rechnung erstellt - {store}",
        "heading": "Automatisch erstellte Rechnung bei {store}",
        "intro": "Für die Bestellung #{order_id} wurde automatisch eine neue Rechnung erstellt.",
        "button": "Rechnung ansehen",
        "sms": "Neue Rechnung für Bestellung #{order_id} bei {store} erstellt",
    },
    "en": {
        "subject": "New invoice created - {store}",
        "heading": "Automatically created invoice at {store}",
        "intro": "A new invoice was created automatically for order #{order_id}.",
        "button": "View invoice",
        "sms": "New invoice created for order #{order_id} at {store}",
    },
    "it": {
        "subject": "Nuova fattura creata - {store}",
        "heading": "Fattura creata automaticamente su {store}",
        "intro": "È stata creata automaticamente una nuova fattura per l'ordine #{order_id}.",
        "button": "Visualizza fattura",
        "sms": "Nuova fattura creata per l'ordine #{order_id} su {store}",
    },
    "sl": {
        "subject": "Nov račun ustvarjen - {store}",
        "heading": "Samodejno ustvarjen račun v {store}",
        "intro": "Za naročilo #{order_id} je bil samodejno ustvarjen nov račun.",
        "button": "Poglej račun",
        "sms": "Nov račun ustvarjen za naročilo #{order_id} v {store}",
    },
}

_NOTIFICATION_FOOTER: Dict[str, str] = {
    "hr": "Ova e-mail poruka je automatski generirana. Molimo vas ne odgovarajte na ovu poruku.",
    "de": "Diese E-Mail wurde automatisch erstellt. Bitte antworten Sie nicht auf diese Nachricht.",
    "en": "This email was generated automatically. Please do not reply to this message.",
    "it": "Questa email è stata generata automaticamente. Si prega di non rispondere a questo messaggio.",
    "sl": "To e-poštno sporočilo je bilo ustvarjeno samodejno. Prosimo, ne odgovarjajte nanj.",
}

_NEWSLETTER: Dict[str, Dict[str, str]] = {
    "de": {
        "subject": "Willkommen zum {store} Newsletter!",
        "text": "Vielen Dank für Ihre Anmeldung zu unserem Newsletter! Verwenden Sie den Code {code} für 10% Rabatt auf Ihre erste Bestellung.",
        "heading": "Vielen Dank für Ihre Anmeldung!",
        "greeting": "Sehr geehrter Kunde,",
        "message": "Vielen Dank für Ihre Anmeldung zu unserem Newsletter. Als Zeichen unserer Wertschätzung haben wir einen speziellen Rabatt für Sie vorbereitet.",
        "code_intro": "Ihr 10% Rabattcode für Ihren ersten Einkauf ist:",
        "closing": "Vielen Dank, dass Sie Teil der Kerzenwelt-Gemeinschaft sind!",
        "regards": "Mit freundlichen Grüßen,",
    },
    "hr": {
        "subject": "Dobrodošli na {store} newsletter!",
        "text": "Hvala vam na pretplati na naš newsletter! Koristite kod {code} za 10% popusta na vašu prvu narudžbu.",
        "heading": "Hvala vam na pretplati!",
        "greeting": "Poštovani,",
        "message": "Hvala vam što ste se pretplatili na naš newsletter. Kao znak zahvalnosti, pripremili smo vam poseban popust.",
        "code_intro": "Vaš kod za 10% popusta pri prvoj kupnji je:",
        "closing": "Hvala što ste dio Kerzenwelt zajednice!",
        "regards": "Srdačan pozdrav,",
    },
    "en": {
        "subject": "Welcome to {store} newsletter!",
        "text": "Thank you for subscribing to our newsletter! Use code {code} for 10% off your first order.",
        "heading": "Thank you for subscribing!",
        "greeting": "Dear Customer,",
        "message": "Thank you for subscribing to our newsletter. As a token of our appreciation, we've prepared a special discount for you.",
        "code_intro": "Your 10% discount code for your first purchase is:",
        "closing": "Thank you for being part of the Kerzenwelt community!",
        "regards": "Best regards,",
    },
    "it": {
        "subject": "Benvenuto alla newsletter di {store}!",
        "text": "Grazie per esserti iscritto alla nostra newsletter! Utilizza il codice {code} per ottenere il 10% di sconto sul tuo primo ordine.",
        "heading": "Grazie per l'iscrizione!",
        "greeting": "Gentile Cliente,",
        "message": "Grazie per esserti iscritto alla nostra newsletter. Come segno del nostro apprezzamento, abbiamo preparato uno sconto speciale per te.",
        "code_intro": "Il tuo codice sconto del 10% per il tuo primo acquisto è:",
        "closing": "Grazie per far parte della comunità Kerzenwelt!",
        "regards": "Cordiali saluti,",
    },
    "sl": {
        "subject": "Dobrodošli v {store} newsletter!",
        "text": "Hvala, ker ste se naročili na naš newsletter! Uporabite kodo {code} za 10% popusta pri prvem naročilu.",
        "heading": "Hvala za vašo prijavo!",
        "greeting": "Spoštovani,",
        "message": "Hvala, ker ste se naročili na naš newsletter. Kot znak zahvale smo vam pripravili poseben popust.",
        "code_intro": "Vaša koda za 10% popust pri prvem nakupu je:",
        "closing": "Hvala, ker ste del skupnosti Kerzenwelt!",
        "regards": "Lep pozdrav,",
    },
}


def verification_email(
    username: str,
    verification_link: str,
    language: Optional[str] = None,
    store_name: str = STORE_NAME,
) -> EmailMessage:
    t = _VERIFICATION[normalize_email_language(language)]
    store = html.escape(store_name)
    link = html.escape(verification_link, quote=True)

    body = """
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"><title>{title}</title></head>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: {accent};">{title}</h2>
                <p>{greeting}</p>
                <p>{message}</p>
                <p style="text-align: center; margin: 30px 0;">
                    <a href="{link}" style="background-color: {accent}; color: #ffffff; padding: 12px 24px; text-decoration: none; border-radius: 5px;">{button}</a>
                </p>
                <p>{expires}</p>
                <p>{ignore}</p>
                <p>{thanks}<br>{team}</p>
            </div>
        </body>
        </html>
    """.format(
        accent=_ACCENT,
        title=html.escape(t["title"]),
        greeting=html.escape(t["greeting"].format(username=username)),
        message=t["message"].format(store=store),
        link=link,
        button=html.escape(t["button"]),
        expires=html.escape(t["expires"]),
        ignore=html.escape(t["ignore"]),
        thanks=html.escape(t["thanks"]),
        team=t["team"].format(store=store),
    )
    return EmailMessage(subject=t["subject"].format(store=store_name), html=body)


def new_order_email(
    order_id: int,
    created_on: str,
    total: float,
    payment_method: str,
    status: str,
    admin_url: str,
    language: str = "hr",
    store_name: str = STORE_NAME,
) -> EmailMessage:
    lang = normalize_email_language(language)
    t = _NEW_ORDER[lang]
    store = html.escape(store_name)
    formatted_total = f"{float(total):.2f}"

    body = """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: {accent}; border-bottom: 2px solid {accent}; padding-bottom: 10px;">{heading}</h2>
            <p>{intro}</p>
            <h3 style="background-color: #f7f7f7; padding: 10px;">{details}</h3>
            <p><strong>{date_label}:</strong> {created_on}</p>
            <p><strong>{total_label}:</strong> {total} EUR</p>
            <p><strong>{payment_label}:</strong> {payment_method}</p>
            <p><strong>{status_label}:</strong> {status}</p>
            <p style="margin-top: 30px;"><a href="{link}" style="display: inline-block; background-color: {accent}; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">{button}</a></p>
            <p style="margin-top: 30px; color: #888; font-size: 12px;">{footer}</p>
        </div>
    """.format(
        accent=_ACCENT,
        heading=t["heading"].format(store=store),
        intro=html.escape(t["intro"]),
        details=html.escape(t["details"].format(order_id=order_id)),
        date_label=html.escape(t["date"]),
        created_on=html.escape(created_on),
        total_label=html.escape(t["total"]),
        total=formatted_total,
        payment_label=html.escape(t["payment"]),
        payment_method=html.escape(payment_method),
        status_label=html.escape(t["status"]),
        status=html.escape(status),
        link=html.escape(f"{admin_url.rstrip('/')}/admin/orders/{order_id}", quote=True),
        button=html.escape(t["button"]),
        footer=html.escape(_NOTIFICATION_FOOTER[lang]),
    )
    return EmailMessage(
        subject=t["subject"].format(order_id=order_id, store=store_name),
        html=body,
        text=t["sms"].format(order_id=order_id, store=store_name, total=formatted_total),
    )


def invoice_created_email(
    order_id: int,
    invoice_id: int,
    admin_url: str,
    language: str = "hr",
    store_name: str = STORE_NAME,
) -> EmailMessage:
    lang = normalize_email_language(language)
    t = _INVOICE_CREATED[lang]
    store = html.escape(store_name)

    body = """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: {accent}; border-bottom: 2px solid {accent}; padding-bottom: 10px;">{heading}</h2>
            <p>{intro}</p>
            <p style="margin-top: 30px;"><a href="{link}" style="display: inline-block; background-color: {accent}; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">{button}</a></p>
            <p style="margin-top: 30px; color: #888; font-size: 12px;">{footer}</p>
        </div>
    """.format(
        accent=_ACCENT,
        heading=t["heading"].format(store=store),
        intro=html.escape(t["intro"].format(order_id=order_id)),
        link=html.escape(f"{admin_url.rstrip('/')}/admin/invoices/{invoice_id}", quote=True),
        button=html.escape(t["button"]),
        footer=html.escape(_NOTIFICATION_FOOTER[lang]),
    )
    return EmailMessage(
        subject=t["subject"].format(store=store_name),
        html=body,
        text=t["sms"].format(order_id=order_id, store=store_name),
    )


def newsletter_welcome_email(
    discount_code: str,
    language: Optional[str] = None,
    signature: str = "Daniela",
    store_name: str = STORE_NAME,
) -> EmailMessage:
    t = _NEWSLETTER[normalize_email_language(language)]
    code = html.escape(discount_code)

    body = """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1 style="color: {accent};">{store}</h1>
            <h2>{heading}</h2>
            <p>{greeting}</p>
            <p>{message}</p>
            <p>{code_intro}</p>
            <div style="background-color: #f0f0f0; padding: 15px; text-align: center; font-size: 20px; font-weight: bold; letter-spacing: 2px; margin: 20px 0;">
                {code}
            </div>
            <p>{closing}</p>
            <p>{regards}<br>{signature}</p>
        </div>
    """.format(
        accent=_ACCENT,
        store=html.escape(store_name),
        heading=html.escape(t["heading"]),
        greeting=html.escape(t["greeting"]),
        message=html.escape(t["message"]),
        code_intro=html.escape(t["code_intro"]),
        code=code,
        closing=html.escape(t["closing"]),
        regards=html.escape(t["regards"]),
        signature=html.escape(signature),
    )
    return EmailMessage(
        subject=t["subject"].format(store=store_name),
        html=body,
        text=t["text"].format(code=discount_code),
    )
