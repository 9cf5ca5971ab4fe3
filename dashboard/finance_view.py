"""Finance view: ZZP tax and BTW calculators, invoices and payments."""
import streamlit as st

from config import _get_app_settings
from core.services import ZZPTaxService
from utils.formatting import format_dutch_currency, format_dutch_date, format_percentage

from .data import load_invoice_data, load_payment_data


def _render_tax_calculator(tax: ZZPTaxService) -> None:
    st.subheader("Inkomstenbelasting")
    col1, col2 = st.columns(2)
    with col1:
        gross = st.number_input("Bruto jaaromzet (€)", min_value=0.0, value=45000.0, step=1000.0, key="tax_gross")
    with col2:
        expenses = st.number_input("Zakelijke kosten (€)", min_value=0.0, value=3000.0, step=250.0, key="tax_expenses")

    detailed = tax.calculate_income_tax_detailed(gross)
    net = tax.calculate_net_income(gross, business_expenses=expenses)

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Zelfstandigenaftrek", detailed.dutch_formatted_deduction)
    m2.metric("Inkomstenbelasting", format_dutch_currency(net.income_tax_amount))
    m3.metric("Netto inkomen", net.dutch_formatted_net)
    m4.metric("Effectief tarief", net.dutch_formatted_effective_rate)

    if detailed.brackets:
        st.table([{
            "Schijf": s.bracket.dutch_formatted_range,
            "Tarief": s.bracket.dutch_formatted_rate,
            "Belast bedrag": format_dutch_currency(s.taxable_income),
            "Belasting": s.dutch_formatted_tax,
        } for s in detailed.brackets])

    with st.expander("Belastingadvies"):
        advice = tax.generate_tax_advice(gross)
        planning = advice["tax_planning"]
        st.write(f"Geschatte belasting: **{format_dutch_currency(planning['estimated_tax'])}**")
        st.write(f"Kwartaalbetaling: **{format_dutch_currency(planning['quarterly_payment_suggestion'])}**")
        st.write(planning["advice"])
        st.write(advice["pension_advice"]["advice"])


def _render_btw_calculator(tax: ZZPTaxService) -> None:
    st.subheader("BTW")
    col1, col2, col3 = st.columns(3)
    with col1:
        quarter_income = st.number_input("Omzet dit kwartaal (€)", min_value=0.0, value=12000.0, step=500.0, key="btw_q")
    with col2:
        projected = st.number_input("Verwachte jaaromzet (€)", min_value=0.0, value=48000.0, step=1000.0, key="btw_year")
    with col3:
        registered = st.checkbox("BTW-geregistreerd", value=True, key="btw_registered")

    btw = tax.calculate_btw(quarter_income, projected, registered=registered)
    m1, m2, m3 = st.columns(3)
    m1.metric("Tarief", btw.dutch_formatted_rate)
    m2.metric("BTW af te dragen", btw.dutch_formatted_btw)
    m3.metric("Volgende aangifte", format_dutch_date(btw.next_reporting_deadline))
    if btw.registration_required:
        st.warning(f"Je omzet komt boven de KOR-grens van {btw.dutch_formatted_threshold}. Registratie is verplicht.")


def _render_vakantiegeld(tax: ZZPTaxService) -> None:
    st.subheader("Vakantiegeld")
    col1, col2 = st.columns(2)
    with col1:
        earnings = st.number_input("Jaarverdiensten (€)", min_value=0.0, value=30000.0, step=500.0, key="vg_earnings")
    with col2:
        paid = st.number_input("Al uitbetaald (€)", min_value=0.0, value=0.0, step=100.0, key="vg_paid")
    result = tax.calculate_vakantiegeld(earnings, paid)
    m1, m2 = st.columns(2)
    m1.metric(f"Vakantiegeld ({format_percentage(result.vakantiegeld_rate, 2)})",
              format_dutch_currency(result.vakantiegeld_total))
    m2.metric("Nog te ontvangen", format_dutch_currency(result.remaining_owed))


def _render_table(title: str, loader, guard_id: str, empty_text: str) -> None:
    st.subheader(title)
    df, error = loader(guard_id)
    if error:
        st.error(error)
    elif df is None:
        st.info(empty_text)
    else:
        st.dataframe(df, use_container_width=True, hide_index=True)


def render_finance_view(guard_id: str) -> None:
    st.title("Financiën")
    tax = ZZPTaxService(settings=_get_app_settings())

    tab_tax, tab_btw, tab_vg, tab_invoices = st.tabs(["Belasting", "BTW", "Vakantiegeld", "Facturen & betalingen"])
    with tab_tax:
        _render_tax_calculator(tax)
    with tab_btw:
        _render_btw_calculator(tax)
    with tab_vg:
        _render_vakantiegeld(tax)
    with tab_invoices:
        _render_table("Facturen", load_invoice_data, guard_id, "Nog geen facturen.")
        _render_table("Betalingen", load_payment_data, guard_id, "Nog geen betalingen.")
