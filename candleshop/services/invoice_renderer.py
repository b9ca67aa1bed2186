from __future__ import annotations

import base64
import html
import mimetypes
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..models.shop_models import InvoiceLine, InvoiceView
from ..resources import get_invoice_logo_path


DEFAULT_LANGUAGE = "hr"

_LABELS: Dict[str, Dict[str, str]] = {
    "hr": {
        "title": "RAČUN",
        "date": "Datum računa",
        "invoiceNo": "Broj računa",
        "buyer": "Podaci o kupcu",
        "seller": "Prodavatelj",
        "item": "Proizvod",
        "quantity": "Količina",
        "price": "Cijena/kom",
        "total": "Ukupno",
        "subtotal": "Međuzbroj",
        "shipping": "Dostava",
        "discount": "Popust",
        "tax": "PDV (0%)",
        "totalAmount": "UKUPNO",
        "paymentInfo": "Informacije o plaćanju",
        "paymentMethod": "Način plaćanja",
        "paymentStatus": "Status plaćanja",
        "cash": "Gotovina",
        "bank_transfer": "Bankovni prijenos",
        "paypal": "PayPal",
        "credit_card": "Kreditna kartica",
        "undefined": "Nije definirano",
        "paid": "Plaćeno",
        "unpaid": "U obradi",
        "deliveryAddress": "Adresa za dostavu",
        "customerNote": "Napomena kupca",
        "orderItems": "Stavke narudžbe",
        "scent": "Miris",
        "color": "Boja",
        "colors": "Boje",
        "thankYou": "Hvala Vam na narudžbi",
        "generatedNote": "Ovo je automatski generirani račun i valjan je bez potpisa i pečata",
        "exemptionNote": (
            "Poduzetnik nije u sustavu PDV-a, PDV nije obračunat temeljem odredbi posebnog "
            "postupka oporezivanja za male porezne obveznike."
        ),
    },
    "en": {
        "title": "INVOICE",
        "date": "Invoice date",
        "invoiceNo": "Invoice number",
        "buyer": "Buyer information",
        "seller": "Seller",
        "item": "Product",
        "quantity": "Quantity",
        "price": "Price/unit",
        "total": "Total",
        "subtotal": "Subtotal",
        "shipping": "Shipping",
        "discount": "Discount",
        "tax": "VAT (0%)",
        "totalAmount": "TOTAL",
        "paymentInfo": "Payment information",
        "paymentMethod": "Payment method",
        "paymentStatus": "Payment status",
        "cash": "Cash",
        "bank_transfer": "Bank transfer",
        "paypal": "PayPal",
        "credit_card": "Credit card",
        "undefined": "Not defined",
        "paid": "Paid",
        "unpaid": "Processing",
        "deliveryAddress": "Delivery address",
        "customerNote": "Customer note",
        "orderItems": "Order items",
        "scent": "Scent",
        "color": "Color",
        "colors": "Colors",
        "thankYou": "Thank you for your order",
        "generatedNote": "This is an automatically generated invoice and is valid without signature or stamp",
        "exemptionNote": (
            "The entrepreneur is not in the VAT system, VAT is not calculated based on the provisions "
            "of the special taxation procedure for small taxpayers."
        ),
    },
    "de": {
        "title": "RECHNUNG",
        "date": "Rechnungsdatum",
        "invoiceNo": "Rechnungsnummer",
        "buyer": "Käuferinformationen",
        "seller": "Verkäufer",
        "item": "Produkt",
        "quantity": "Menge",
        "price": "Preis/Stück",
        "total": "Gesamt",
        "subtotal": "Zwischensumme",
        "shipping": "Versand",
        "discount": "Rabatt",
        "tax": "MwSt. (0%)",
        "totalAmount": "GESAMTBETRAG",
        "paymentInfo": "Zahlungsinformationen",
        "paymentMethod": "Zahlungsmethode",
        "paymentStatus": "Zahlungsstatus",
        "cash": "Barzahlung",
        "bank_transfer": "Banküberweisung",
        "paypal": "PayPal",
        "credit_card": "Kreditkarte",
        "undefined": "Nicht definiert",
        "paid": "Bezahlt",
        "unpaid": "In Bearbeitung",
        "deliveryAddress": "Lieferadresse",
        "customerNote": "Kundenhinweis",
        "orderItems": "Bestellpositionen",
        "scent": "Duft",
        "color": "Farbe",
        "colors": "Farben",
        "thankYou": "Vielen Dank für Ihre Bestellung",
        "generatedNote": "Dies ist eine automatisch generierte Rechnung und ist ohne Unterschrift und Stempel gültig",
        "exemptionNote": (
            "Der Unternehmer ist nicht im Mehrwertsteuersystem, MwSt. wird nicht berechnet gemäß den "
            "Bestimmungen der Kleinunternehmerregelung."
        ),
    },
    "it": {
        "title": "FATTURA",
        "date": "Data fattura",
        "invoiceNo": "Numero fattura",
        "buyer": "Dati dell'acquirente",
        "seller": "Venditore",
        "item": "Prodotto",
        "quantity": "Quantità",
        "price": "Prezzo/pz",
        "total": "Totale",
        "subtotal": "Subtotale",
        "shipping": "Spedizione",
        "discount": "Sconto",
        "tax": "IVA (0%)",
        "totalAmount": "TOTALE",
        "paymentInfo": "Informazioni di pagamento",
        "paymentMethod": "Metodo di pagamento",
        "paymentStatus": "Stato del pagamento",
        "cash": "Contanti",
        "bank_transfer": "Bonifico bancario",
        "paypal": "PayPal",
        "credit_card": "Carta di credito",
        "undefined": "Non definito",
        "paid": "Pagato",
        "unpaid": "In elaborazione",
        "deliveryAddress": "Indirizzo di consegna",
        "customerNote": "Nota del cliente",
        "orderItems": "Articoli dell'ordine",
        "scent": "Profumo",
        "color": "Colore",
        "colors": "Colori",
        "thankYou": "Grazie per il tuo ordine",
        "generatedNote": "Questa è una fattura generata automaticamente ed è valida senza firma e timbro",
        "exemptionNote": (
            "L'imprenditore non è nel sistema IVA, l'IVA non è calcolata in base alle disposizioni "
            "del regime speciale per i piccoli contribuenti."
        ),
    },
    "sl": {
        "title": "RAČUN",
        "date": "Datum računa",
        "invoiceNo": "Številka računa",
        "buyer": "Podatki o kupcu",
        "seller": "Prodajalec",
        "item": "Izdelek",
        "quantity": "Količina",
        "price": "Cena/kos",
        "total": "Skupaj",
        "subtotal": "Vmesni seštevek",
        "shipping": "Dostava",
        "discount": "Popust",
        "tax": "DDV (0%)",
        "totalAmount": "SKUPAJ",
        "paymentInfo": "Podatki o plačilu",
        "paymentMethod": "Način plačila",
        "paymentStatus": "Status plačila",
        "cash": "Gotovina",
        "bank_transfer": "Bančno nakazilo",
        "paypal": "PayPal",
        "credit_card": "Kreditna kartica",
        "undefined": "Ni določeno",
        "paid": "Plačano",
        "unpaid": "V obdelavi",
        "deliveryAddress": "Naslov za dostavo",
        "customerNote": "Opomba kupca",
        "orderItems": "Postavke naročila",
        "scent": "Vonj",
        "color": "Barva",
        "colors": "Barve",
        "thankYou": "Hvala za vaše naročilo",
        "generatedNote": "To je samodejno ustvarjen račun in je veljaven brez podpisa in žiga",
        "exemptionNote": (
            "Podjetnik ni v sistemu DDV, DDV ni obračunan na podlagi določb posebnega postopka "
            "obdavčitve za male davčne zavezance."
        ),
    },
}


def supported_languages() -> List[str]:
    return list(_LABELS)


def normalize_language(language: Optional[str]) -> str:
    candidate = (language or "").strip().lower()
    return candidate if candidate in _LABELS else DEFAULT_LANGUAGE


def get_labels(language: Optional[str]) -> Dict[str, str]:
    return _LABELS[normalize_language(language)]


def format_money(value: float) -> str:
    return f"{float(value):.2f} €"


def invoice_filename(invoice_number: str) -> str:
    return f"invoice-{invoice_number}.pdf"


def payment_method_label(method: str, labels: Dict[str, str]) -> str:
    cleaned = (method or "").strip()
    if not cleaned:
        return labels["undefined"]
    if cleaned in ("cash", "bank_transfer", "paypal", "credit_card"):
        return labels[cleaned]
    return cleaned.replace("_", " ").title()


def render_invoice(view: InvoiceView, language: Optional[str] = None) -> bytes:
    """Render the invoice to PDF bytes."""
    # Qt is only loaded once a PDF is actually requested.
    from .pdf_writer import write_pdf_bytes

    return write_pdf_bytes(render_invoice_html(view, language))


def render_invoice_html(view: InvoiceView, language: Optional[str] = None) -> str:
    labels = get_labels(language or view.language)
    lang = normalize_language(language or view.language)
    seller = view.seller

    seller_lines = [line for line in (seller.address, seller.city, seller.email, seller.phone, seller.website) if line]
    seller_details = "".join(f"<p>{html.escape(line)}</p>" for line in seller_lines)

    logo_markup = ""
    logo_payload = _load_logo_data(seller.logo_path)
    if logo_payload is not None:
        mime_type, encoded = logo_payload
        logo_markup = (
            f"<img src=\"data:{mime_type};base64,{encoded}\" "
            f"alt=\"{html.escape(seller.name)} logo\" class=\"logo\" width=\"96\" height=\"96\"/>"
        )

    buyer_lines = [
        view.customer_name,
        view.customer_address,
        " ".join(part for part in (view.customer_postal_code, view.customer_city) if part),
        view.customer_country,
        view.customer_email,
        view.customer_phone,
    ]
    buyer_block = "<br>".join(html.escape(line) for line in buyer_lines if line and line.strip())

    note_text = (view.customer_note or "").strip()
    note_cell = ""
    if note_text:
        note_cell = (
            "<td class=\"card\" width=\"50%\">"
            f"<h3>{html.escape(labels['customerNote'])}</h3>"
            f"<p>{html.escape(note_text).replace(chr(10), '<br>')}</p>"
            "</td>"
        )

    line_rows = [_render_line(line, labels) for line in view.lines]
    if not line_rows:
        line_rows.append("<tr><td colspan=\"4\" class=\"empty\">-</td></tr>")

    totals: List[Tuple[str, str, str]] = [
        ("", labels["subtotal"], format_money(view.subtotal)),
        ("", labels["shipping"], format_money(view.shipping_cost)),
    ]
    if view.discount_amount > 0:
        totals.append(("", labels["discount"], f"-{format_money(view.discount_amount)}"))
    totals.append(("", labels["tax"], format_money(view.tax)))
    totals.append(("total-due", labels["totalAmount"], format_money(view.total)))
    totals_html = "".join(
        f"<tr class=\"{css}\"><td colspan=\"3\" class=\"totals-label\">{html.escape(label)}</td>"
        f"<td class=\"currency\">{html.escape(amount)}</td></tr>"
        for css, label, amount in totals
    )

    status_label = labels["paid"] if view.payment_status == "completed" else labels["unpaid"]

    styles = """
        body { font-family: 'Helvetica', Arial, sans-serif; color: #1f2933; font-size: 10pt; }
        p { margin: 0; }
        h1 { margin: 0 0 4px 0; font-size: 18pt; color: #111827; }
        h3 { margin: 0 0 4px 0; font-size: 9pt; text-transform: uppercase; color: #6b7280; }
        .title { font-size: 22pt; font-weight: 700; color: #0f172a; text-align: right; }
        .meta { text-align: right; color: #334155; }
        .card { padding: 8px 10px; border: 1px solid #e5e9f0; vertical-align: top; }
        table.items { width: 100%; border-collapse: collapse; margin-top: 14px; }
        table.items th { text-align: left; background-color: #f8fafc; padding: 6px; border-bottom: 1px solid #e5e9f0; }
        table.items td { padding: 5px 6px; border-bottom: 1px solid #e5e9f0; vertical-align: top; }
        .variant { color: #475569; font-size: 8.5pt; }
        .qty { text-align: center; }
        .currency { text-align: right; }
        .totals-label { text-align: right; font-weight: 600; }
        tr.total-due td { background-color: #0f172a; color: #ffffff; font-weight: 700; }
        .empty { text-align: center; color: #94a3b8; }
        .exemption { margin-top: 6px; font-size: 8pt; color: #6b7280; }
        .footer { margin-top: 18px; font-size: 8.5pt; text-align: center; color: #6b7280; }
    """

    return """
        <!DOCTYPE html>
        <html lang="{lang}">
        <head>
            <meta charset="utf-8" />
            <title>{title} {invoice_number}</title>
            <style>{styles}</style>
        </head>
        <body>
            <table width="100%">
                <tr>
                    <td width="60%">
                        {logo}
                        <h1>{seller_name}</h1>
                        {seller_details}
                    </td>
                    <td width="40%">
                        <div class="title">{title}</div>
                        <p class="meta">{invoice_no_label}: {invoice_number}</p>
                        <p class="meta">{date_label}: {invoice_date}</p>
                    </td>
                </tr>
            </table>
            <table width="100%" cellspacing="6">
                <tr>
                    <td class="card" width="50%">
                        <h3>{buyer_label}</h3>
                        <p>{buyer_block}</p>
                    </td>
                    {note_cell}
                </tr>
            </table>
            <h3>{order_items_label}</h3>
            <table class="items">
                <thead>
                    <tr>
                        <th>{item_label}</th>
                        <th class="qty">{quantity_label}</th>
                        <th class="currency">{price_label}</th>
                        <th class="currency">{total_label}</th>
                    </tr>
                </thead>
                <tbody>
                    {rows}
                </tbody>
                <tfoot>
                    {totals}
                </tfoot>
            </table>
            <p class="exemption">{exemption_note}</p>
            <h3>{payment_info_label}</h3>
            <p>{payment_method_label}: {payment_method}</p>
            <p>{payment_status_label}: {payment_status}</p>
            <p class="footer">{thank_you}<br>{generated_note}<br>{seller_contact}</p>
        </body>
        </html>
    """.format(
        lang=lang,
        styles=styles,
        title=html.escape(labels["title"]),
        invoice_number=html.escape(view.invoice_number),
        logo=logo_markup,
        seller_name=html.escape(seller.name),
        seller_details=seller_details,
        invoice_no_label=html.escape(labels["invoiceNo"]),
        date_label=html.escape(labels["date"]),
        invoice_date=view.issued_at.strftime("%d.%m.%Y."),
        buyer_label=html.escape(labels["buyer"]),
        buyer_block=buyer_block,
        note_cell=note_cell,
        order_items_label=html.escape(labels["orderItems"]),
        item_label=html.escape(labels["item"]),
        quantity_label=html.escape(labels["quantity"]),
        price_label=html.escape(labels["price"]),
        total_label=html.escape(labels["total"]),
        rows="".join(line_rows),
        totals=totals_html,
        exemption_note=html.escape(labels["exemptionNote"]),
        payment_info_label=html.escape(labels["paymentInfo"]),
        payment_method_label=html.escape(labels["paymentMethod"]),
        payment_method=html.escape(payment_method_label(view.payment_method, labels)),
        payment_status_label=html.escape(labels["paymentStatus"]),
        payment_status=html.escape(status_label),
        thank_you=html.escape(labels["thankYou"]),
        generated_note=html.escape(labels["generatedNote"]),
        seller_contact=html.escape(" | ".join(part for part in (seller.name, seller.email, seller.website) if part)),
    )


def _render_line(line: InvoiceLine, labels: Dict[str, str]) -> str:
    annotations: List[str] = []
    if line.selected_scent:
        annotations.append(f"{labels['scent']}: {line.selected_scent}")
    if line.selected_color:
        color_label = labels["colors"] if line.has_multiple_colors else labels["color"]
        annotations.append(f"{color_label}: {line.selected_color}")

    description = html.escape(line.product_name)
    if annotations:
        description += "".join(f"<br><span class=\"variant\">{html.escape(text)}</span>" for text in annotations)

    return (
        "<tr>"
        f"<td>{description}</td>"
        f"<td class=\"qty\">{int(line.quantity)}</td>"
        f"<td class=\"currency\">{html.escape(format_money(line.price))}</td>"
        f"<td class=\"currency\">{html.escape(format_money(line.line_total))}</td>"
        "</tr>"
    )


def _load_logo_data(path_str: str) -> Optional[Tuple[str, str]]:
    path = get_invoice_logo_path(path_str)
    if path is None:
        return None

    mime_type, _ = mimetypes.guess_type(str(path))
    if not mime_type:
        mime_type = "image/png"

    try:
        data = Path(path).read_bytes()
    except OSError:
        return None

    encoded = base64.b64encode(data).decode("ascii")
    return mime_type, encoded
