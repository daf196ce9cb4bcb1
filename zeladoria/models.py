from flask_sqlalchemy import SQLAlchemy
from datetime import datetime
from enum import Enum

db = SQLAlchemy()


class AreaStatus(Enum):
    PENDING = "Pendente"
    IN_PROGRESS = "Em Execução"
    COMPLETED = "Concluído"


class ServiceArea(db.Model):
    """Public area serviced by a mowing/gardening team."""
    __tablename__ = "service_areas"

    id = db.Column(db.Integer, primary_key=True)
    ordem = db.Column(db.Integer, nullable=True)
    sequencia_cadastro = db.Column(db.Integer, nullable=True)
    tipo = db.Column(db.String(64), nullable=False)
    endereco = db.Column(db.String(256), nullable=False)
    bairro = db.Column(db.String(128))
    metragem_m2 = db.Column(db.Float)
    lat = db.Column(db.Float, nullable=False)
    lng = db.Column(db.Float, nullable=False)
    lote = db.Column(db.Integer, nullable=True, index=True)
    servico = db.Column(db.String(32), nullable=True, index=True)  # 'rocagem', 'jardins'
    status = db.Column(db.String(32), nullable=False, default=AreaStatus.PENDING.value)
    history = db.Column(db.JSON, nullable=False, default=list)

    # Scheduling fields
    scheduled_date = db.Column(db.String(10), nullable=True)
    proxima_previsao = db.Column(db.String(10), nullable=True)  # YYYY-MM-DD
    days_to_complete = db.Column(db.Integer, nullable=True)
    manual_schedule = db.Column(db.Boolean, nullable=False, default=False)

    ultima_rocagem = db.Column(db.String(10), nullable=True)  # YYYY-MM-DD
    observacoes = db.Column(db.Text, nullable=True)
    registrado_por = db.Column(db.String(128), nullable=True)
    data_registro = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ServiceArea {self.id} - lote {self.lote} - {self.endereco}>"

    def to_schedule_dict(self):
        """Plain dict with only the fields the scheduling calculator reads."""
        return {
            'id': self.id,
            'lote': self.lote,
            'servico': self.servico,
            'metragem_m2': self.metragem_m2,
            'ordem': self.ordem,
            'manual_schedule': bool(self.manual_schedule),
        }

    def to_dict(self):
        return {
            'id': self.id,
            'ordem': self.ordem,
            'sequenciaCadastro': self.sequencia_cadastro,
            'tipo': self.tipo,
            'endereco': self.endereco,
            'bairro': self.bairro,
            'metragem_m2': self.metragem_m2,
            'lat': self.lat,
            'lng': self.lng,
            'lote': self.lote,
            'servico': self.servico,
            'status': self.status,
            'history': self.history or [],
            'scheduledDate': self.scheduled_date,
            'proximaPrevisao': self.proxima_previsao,
            'daysToComplete': self.days_to_complete,
            'manualSchedule': bool(self.manual_schedule),
            'ultimaRocagem': self.ultima_rocagem,
            'observacoes': self.observacoes,
            'registradoPor': self.registrado_por,
            'dataRegistro': self.data_registro.isoformat() if self.data_registro else None,
        }


class AppConfig(db.Model):
    '''Single-row application configuration'''
    __tablename__ = "app_config"

    id = db.Column(db.Integer, primary_key=True)
    # {"lote1": 85000, "lote2": 70000} in m² per working day
    mowing_production_rate = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def get_current(cls):
        '''Get the configuration row, if any'''
        return cls.query.order_by(cls.id.asc()).first()

    def to_dict(self):
        return {
            'mowingProductionRate': dict(self.mowing_production_rate or {}),
        }
